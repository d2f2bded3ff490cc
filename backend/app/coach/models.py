from __future__ import annotations

from dataclasses import dataclass

from core.config import (
    AUTO_REQUEST_ON_OPEN,
    CONNECT_TIMEOUT_SEC,
    FEEDBACK_REQUIRE_COMPLETE,
    REQUEST_TIMEOUT_SEC,
    RESPONSE_TEMPERATURE,
)


@dataclass
class CoachConfig:
    temperature: float = RESPONSE_TEMPERATURE
    request_timeout_sec: float = REQUEST_TIMEOUT_SEC
    connect_timeout_sec: float = CONNECT_TIMEOUT_SEC
    require_complete_feedback: bool = FEEDBACK_REQUIRE_COMPLETE
    auto_request_on_open: bool = AUTO_REQUEST_ON_OPEN
    event_channel_label: str = "oai-events"


def validate_phrase(phrase: str) -> str:
    if not isinstance(phrase, str) or not phrase.strip():
        raise ValueError("target phrase must be non-empty text")
    return phrase
