from __future__ import annotations

from enum import Enum


class PunchKind(str, Enum):
    """Direction of a punch gesture."""

    IN = "IN"
    OUT = "OUT"

    @property
    def wire_code(self) -> int:
        # Remote API: 1 = check-in, 2 = check-out
        return 1 if self is PunchKind.IN else 2


class PunchPhase(str, Enum):
    """Attendance phase of a single civil day."""

    NOT_PUNCHED = "NOT_PUNCHED"
    PUNCHED_IN = "PUNCHED_IN"
    PUNCHED_OUT = "PUNCHED_OUT"


class ShiftStatus(str, Enum):
    """Advisory classification of a punch against the shift window."""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    EARLY = "EARLY"


class PunchOutcome(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    PENDING = "PENDING"


class SyncStatus(str, Enum):
    """Whether a ledger entry still has to reach the server."""

    SYNCED = "SYNCED"
    PENDING_SYNC = "PENDING_SYNC"


class PunchFailure(str, Enum):
    """Failure kinds surfaced to the UI layer. Never collapsed into one."""

    LOCATION_UNAVAILABLE = "LOCATION_UNAVAILABLE"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    ALREADY_IN_PROGRESS = "ALREADY_IN_PROGRESS"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    SERVER_REJECTED = "SERVER_REJECTED"
    UNEXPECTED = "UNEXPECTED"
