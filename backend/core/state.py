# backend/core/state.py

from enum import Enum

class RealtimeSessionState(str, Enum):
    IDLE = "idle"
    ACQUIRING_CREDENTIAL = "acquiring_credential"
    NEGOTIATING = "negotiating"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


CONNECTABLE_STATES = frozenset({
    RealtimeSessionState.IDLE,
    RealtimeSessionState.CLOSED,
    RealtimeSessionState.FAILED,
})
