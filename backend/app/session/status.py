from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Callable

from core.config import FEEDBACK_HISTORY_LIMIT
from core.state import RealtimeSessionState

logger = logging.getLogger("app.session.status")


@dataclass(frozen=True)
class SessionStatus:
    state: RealtimeSessionState = RealtimeSessionState.IDLE
    score: int | None = None
    transcript: str = ""
    tips: tuple[str, ...] = ()
    error: str | None = None
    busy: bool = False

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "score": self.score,
            "transcript": self.transcript,
            "tips": list(self.tips),
            "error": self.error,
            "busy": self.busy,
        }


@dataclass(frozen=True)
class FeedbackEntry:
    phrase: str
    score: int | None
    transcript: str
    tips: tuple[str, ...]
    recorded_at: float

    def to_dict(self) -> dict:
        return {
            "phrase": self.phrase,
            "score": self.score,
            "transcript_en": self.transcript,
            "tips_es": list(self.tips),
            "recorded_at": self.recorded_at,
        }


StatusListener = Callable[[SessionStatus], None]


class StatusPublisher:
    """
    Holds the current SessionStatus snapshot and pushes every change to
    subscribed presentation layers.
    """

    def __init__(self, history_limit: int = FEEDBACK_HISTORY_LIMIT):
        self._status = SessionStatus()
        self._listeners: list[StatusListener] = []
        self._history: deque[FeedbackEntry] = deque(maxlen=max(1, history_limit))

    @property
    def current(self) -> SessionStatus:
        return self._status

    @property
    def last_records(self) -> tuple[FeedbackEntry, ...]:
        """Published feedback, oldest first. Bounded; nothing is persisted."""
        return tuple(self._history)

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def update(self, **changes) -> SessionStatus:
        next_status = replace(self._status, **changes)
        if next_status == self._status:
            return self._status
        self._status = next_status
        for listener in list(self._listeners):
            try:
                listener(next_status)
            except Exception as exc:
                logger.warning("status listener failed | listener=%s err=%s", listener, exc)
        return next_status

    def set_state(self, state: RealtimeSessionState) -> SessionStatus:
        return self.update(state=state)

    def clear_feedback(self) -> SessionStatus:
        return self.update(score=None, transcript="", tips=())

    def publish_feedback(self, record, phrase: str = "") -> SessionStatus:
        self._history.append(
            FeedbackEntry(
                phrase=phrase,
                score=record.score,
                transcript=record.transcript,
                tips=tuple(record.tips),
                recorded_at=time.time(),
            )
        )
        return self.update(score=record.score, transcript=record.transcript, tips=tuple(record.tips), error=None)

    def report_error(self, error: BaseException | str | None) -> SessionStatus:
        return self.update(error=str(error) if error is not None else None)
