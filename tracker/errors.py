"""
Tracker errors.
InvalidTransitionError: recoverable, the caller re-checks state and tells the user.
PersistenceError: store I/O failed; in-memory state was still applied.
MalformedRecordError: stored record failed validation; handled by discarding it.
"""
from typing import Any, Optional


class TrackerError(Exception):
    pass


class InvalidTransitionError(TrackerError):
    action = "transition"

    def __init__(self, state: Any, message: Optional[str] = None):
        self.state = state
        label = getattr(state, "value", state)
        super().__init__(message or f"Cannot {self.action} while {label}")


class AlreadyActiveError(InvalidTransitionError):
    action = "start"


class NotRunningError(InvalidTransitionError):
    action = "pause"


class NotPausedError(InvalidTransitionError):
    action = "resume"


class NoActiveOutageError(InvalidTransitionError):
    action = "stop"


class PersistenceError(TrackerError):
    def __init__(self, message: str, outage: Any = None):
        super().__init__(message)
        self.outage = outage


class PersistenceReadError(PersistenceError):
    pass


class PersistenceWriteError(PersistenceError):
    pass


class MalformedRecordError(TrackerError):
    pass
