from __future__ import annotations


class RealtimeCoachError(Exception):
    """Base class for every failure the coaching session can surface."""


class CredentialError(RealtimeCoachError):
    pass


class NegotiationError(RealtimeCoachError):
    pass


class TransportError(RealtimeCoachError):
    pass


class ProtocolError(RealtimeCoachError):
    """Error event sent by the remote side over the event channel."""

    def __init__(self, code: str | None, message: str | None):
        self.code = code
        self.message = message
        super().__init__(f"code={code or 'unknown'} message={message or ''}")


class ParseError(RealtimeCoachError):
    pass


class BusyError(RealtimeCoachError):
    pass


class RequestTimeoutError(RealtimeCoachError, TimeoutError):
    pass


class InvalidStateError(RealtimeCoachError):
    pass
