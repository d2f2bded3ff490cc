from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable

from app.coach.events import (
    OUTPUT_TEXT_DELTA,
    InboundEvent,
    RemoteError,
    ResponseCompleted,
    ResponseDelta,
    decode_message,
    parse_inbound_event,
    response_create_event,
)
from app.coach.feedback import FeedbackRecord, normalize
from app.coach.models import CoachConfig, validate_phrase
from app.errors import BusyError, ProtocolError, RequestTimeoutError, TransportError
from app.prompts import build_response_instructions
from app.session.status import StatusPublisher
from core.logger import log_event

logger = logging.getLogger("app.coach.coordinator")

SendFn = Callable[[str], None]


class ResponseCoordinator:
    """
    Serializes "create response" cycles on one event channel and turns the
    streamed text of each cycle into a FeedbackRecord.

    handle_message is the single dispatcher for inbound events; it never
    awaits, so one event is fully handled before the next is delivered.
    """

    def __init__(self, send_fn: SendFn, status: StatusPublisher, config: CoachConfig | None = None, session_id: str = ""):
        self._send_fn = send_fn
        self.status = status
        self.config = config or CoachConfig()
        self.session_id = session_id
        self.busy = False
        self.expecting_json = False
        self.buffer = ""
        self.last_record: FeedbackRecord | None = None
        self.phrase = ""
        self.last_error: Exception | None = None
        self._timeout_handle: asyncio.TimerHandle | None = None

    def request_response(self, phrase: str) -> None:
        validate_phrase(phrase)
        if self.busy:
            logger.warning("response already in flight, request rejected | session=%s", self.session_id)
            raise BusyError("a response is already in progress; wait for it to finish")

        timeout = float(self.config.request_timeout_sec or 0.0)
        loop = asyncio.get_running_loop() if timeout > 0 else None

        self.status.clear_feedback()
        self.buffer = ""
        self.phrase = phrase
        self.expecting_json = True
        self.busy = True
        self.status.update(busy=True, error=None)

        payload = response_create_event(
            instructions=build_response_instructions(phrase),
            temperature=self.config.temperature,
        )
        try:
            self._send_fn(json.dumps(payload))
        except Exception as exc:
            self._finish_cycle()
            self.status.update(busy=False)
            raise TransportError(f"failed to send response.create: {exc}") from exc

        if loop is not None:
            self._timeout_handle = loop.call_later(timeout, self._on_timeout)
        log_event("coordinator", "response_requested", self.session_id, temperature=self.config.temperature)

    def handle_message(self, raw) -> InboundEvent | None:
        message = decode_message(raw)
        if message is None:
            return None

        event = parse_inbound_event(message)
        if isinstance(event, ResponseDelta):
            self._on_delta(event)
        elif isinstance(event, ResponseCompleted):
            self._on_completed()
        elif isinstance(event, RemoteError):
            self._on_error(event)
        return event

    def reset(self) -> None:
        self._finish_cycle()
        self.status.update(busy=False)

    def _on_delta(self, event: ResponseDelta) -> None:
        if self.expecting_json and event.delta_type == OUTPUT_TEXT_DELTA and event.text is not None:
            self.buffer += event.text

    def _on_completed(self) -> None:
        try:
            if self.expecting_json:
                record = normalize(self.buffer, require_complete=self.config.require_complete_feedback)
                if record is not None:
                    self.last_record = record
                    self.status.publish_feedback(record, phrase=self.phrase)
                    log_event(
                        "coordinator",
                        "feedback_published",
                        self.session_id,
                        score=record.score,
                        transcript=record.transcript,
                        tips=record.tips,
                    )
        finally:
            self._finish_cycle()
            self.status.update(busy=False)

    def _on_error(self, event: RemoteError) -> None:
        error = ProtocolError(event.code, event.message)
        logger.error("remote error event | session=%s code=%s message=%s", self.session_id, event.code, event.message)
        self._finish_cycle()
        self._report(error)

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        if not self.busy:
            return
        error = RequestTimeoutError(f"no completion within {self.config.request_timeout_sec:.1f}s")
        logger.warning("response timed out, lock released | session=%s", self.session_id)
        self._finish_cycle()
        self._report(error)

    def _report(self, error: Exception) -> None:
        self.last_error = error
        self.status.update(busy=False, error=str(error))

    def _finish_cycle(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None
        self.buffer = ""
        self.expecting_json = False
        self.busy = False
