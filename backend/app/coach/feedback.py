from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any

from app.errors import ParseError
from app.schemas import FeedbackPayload

logger = logging.getLogger("app.coach.feedback")

TIP_PLACEHOLDER = "(tip pendiente)"
TIP_COUNT = 3

_LEADING_FENCE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"```$")


@dataclass(frozen=True)
class FeedbackRecord:
    score: int | None
    transcript: str
    tips: tuple[str, ...]

    def to_payload(self) -> dict:
        return FeedbackPayload(
            score=self.score,
            transcript_en=self.transcript,
            tips_es=list(self.tips),
        ).model_dump()


def _strip_fences(raw: str) -> str:
    text = str(raw or "").strip()
    text = _LEADING_FENCE.sub("", text)
    text = _TRAILING_FENCE.sub("", text)
    return text.strip()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def coerce_score(value: Any) -> int | None:
    if isinstance(value, bool):
        return None

    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        return None
    if value == "":
        return None

    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None

    if not math.isfinite(number):
        return None
    return min(100, max(0, _round_half_up(number)))


def coerce_tips(value: Any) -> tuple[str, ...]:
    items = value if isinstance(value, list) else []
    tips = [item for item in items if isinstance(item, str) and item.strip()][:TIP_COUNT]
    while len(tips) < TIP_COUNT:
        tips.append(TIP_PLACEHOLDER)
    return tuple(tips)


def parse_feedback(raw: str) -> FeedbackRecord:
    """
    Decodes one buffered model answer into a FeedbackRecord.
    Raises ParseError when the text is not a JSON object.
    """
    cleaned = _strip_fences(raw)
    try:
        parsed = json.loads(cleaned)
    except ValueError as exc:
        raise ParseError(f"feedback is not valid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ParseError(f"feedback must be a JSON object, got {type(parsed).__name__}")

    transcript = parsed.get("transcript_en")
    return FeedbackRecord(
        score=coerce_score(parsed.get("score")),
        transcript=transcript if isinstance(transcript, str) else "",
        tips=coerce_tips(parsed.get("tips_es")),
    )


def normalize(raw: str, require_complete: bool = True) -> FeedbackRecord | None:
    if not str(raw or "").strip():
        return None

    try:
        record = parse_feedback(raw)
    except ParseError as exc:
        logger.warning("feedback parse error | err=%s raw_len=%s", exc, len(raw))
        return None

    if require_complete and (record.score is None or not record.transcript):
        logger.warning(
            "feedback incomplete, discarded | has_score=%s has_transcript=%s",
            record.score is not None,
            bool(record.transcript),
        )
        return None
    return record
