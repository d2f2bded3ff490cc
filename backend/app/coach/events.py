from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union

OUTPUT_TEXT_DELTA = "output_text.delta"

# Provider event names that carry the delta text directly as a string.
_FLAT_DELTA_TYPES = {"response.text.delta", "response.output_text.delta"}
_COMPLETION_TYPES = {"response.completed", "response.done"}


@dataclass(frozen=True)
class ResponseDelta:
    delta_type: str
    text: str | None


@dataclass(frozen=True)
class ResponseCompleted:
    pass


@dataclass(frozen=True)
class RemoteError:
    code: str | None
    message: str | None


InboundEvent = Union[ResponseDelta, ResponseCompleted, RemoteError]


def decode_message(raw) -> dict | None:
    """Returns the JSON object carried by a channel message, or None for binary/undecodable payloads."""
    if not isinstance(raw, str):
        return None
    try:
        message = json.loads(raw)
    except ValueError:
        return None
    return message if isinstance(message, dict) else None


def parse_inbound_event(message: dict) -> InboundEvent | None:
    event_type = str(message.get("type") or "")

    if event_type == "response.delta":
        delta = message.get("delta") if isinstance(message.get("delta"), dict) else {}
        text = delta.get("text")
        return ResponseDelta(
            delta_type=str(delta.get("type") or ""),
            text=text if isinstance(text, str) else None,
        )

    if event_type in _FLAT_DELTA_TYPES:
        text = message.get("delta")
        return ResponseDelta(delta_type=OUTPUT_TEXT_DELTA, text=text if isinstance(text, str) else None)

    if event_type in _COMPLETION_TYPES:
        return ResponseCompleted()

    if event_type == "error":
        error = message.get("error") if isinstance(message.get("error"), dict) else {}
        code = error.get("code")
        text = error.get("message") or error.get("error")
        return RemoteError(
            code=str(code) if code is not None else None,
            message=str(text) if text is not None else None,
        )

    return None


def session_update_event(instructions: str) -> dict:
    return {
        "type": "session.update",
        "session": {"instructions": instructions},
    }


def response_create_event(instructions: str, temperature: float, modalities: tuple[str, ...] = ("audio", "text")) -> dict:
    return {
        "type": "response.create",
        "response": {
            "modalities": list(modalities),
            "temperature": temperature,
            "instructions": instructions,
        },
    }
