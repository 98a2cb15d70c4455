from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import as_utc
from ..core.enums import PunchFailure, PunchKind, PunchOutcome, PunchPhase
from ..ledger.model import PunchEvent
from ..shifts.model import Classification


def _iso(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


@dataclass(frozen=True)
class DayAttendanceState:
    """Attendance of one civil day. Never carried across days."""

    local_date: date
    phase: PunchPhase = PunchPhase.NOT_PUNCHED
    punch_in_at_utc: Optional[datetime] = None
    punch_out_at_utc: Optional[datetime] = None

    @classmethod
    def fresh(cls, local_date: date) -> "DayAttendanceState":
        return cls(local_date=local_date)

    def punched_in(self, at_utc: Optional[datetime]) -> "DayAttendanceState":
        return replace(self, phase=PunchPhase.PUNCHED_IN, punch_in_at_utc=at_utc)

    def punched_out(self, at_utc: Optional[datetime]) -> "DayAttendanceState":
        return replace(self, phase=PunchPhase.PUNCHED_OUT, punch_out_at_utc=at_utc)

    def allows(self, kind: PunchKind) -> bool:
        if kind == PunchKind.IN:
            return self.phase == PunchPhase.NOT_PUNCHED
        return self.phase == PunchPhase.PUNCHED_IN

    def worked_minutes(self, now_utc: datetime) -> int:
        """Minutes since punch-in, up to punch-out when there is one."""
        if self.punch_in_at_utc is None:
            return 0
        end = self.punch_out_at_utc or now_utc
        seconds = (as_utc(end) - as_utc(self.punch_in_at_utc)).total_seconds()
        return max(0, int(seconds // 60))

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.local_date.isoformat(),
            "phase": self.phase.value,
            "punch_in_at": _iso(self.punch_in_at_utc),
            "punch_out_at": _iso(self.punch_out_at_utc),
        }


@dataclass(frozen=True)
class PunchResult:
    kind: PunchKind
    outcome: PunchOutcome
    message: str = ""
    failure: Optional[PunchFailure] = None
    classification: Optional[Classification] = None
    warning: str = ""
    distance_meters: Optional[float] = None
    event: Optional[PunchEvent] = None

    @property
    def success(self) -> bool:
        return self.outcome == PunchOutcome.ACCEPTED

    @classmethod
    def accepted(
        cls,
        event: PunchEvent,
        *,
        message: str = "",
        warning: str = "",
    ) -> "PunchResult":
        return cls(
            kind=event.kind,
            outcome=PunchOutcome.ACCEPTED,
            message=message,
            classification=event.classification,
            warning=warning,
            event=event,
        )

    @classmethod
    def failed(
        cls,
        kind: PunchKind,
        failure: PunchFailure,
        message: str,
        *,
        event: Optional[PunchEvent] = None,
        distance_meters: Optional[float] = None,
    ) -> "PunchResult":
        return cls(
            kind=kind,
            outcome=PunchOutcome.REJECTED,
            message=message,
            failure=failure,
            classification=event.classification if event else None,
            distance_meters=distance_meters,
            event=event,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "kind": self.kind.value,
            "outcome": self.outcome.value,
            "failure": self.failure.value if self.failure else None,
            "message": self.message,
            "warning": self.warning,
            "classification": self.classification.to_dict() if self.classification else None,
            "distance_meters": round(self.distance_meters) if self.distance_meters is not None else None,
            "confirmed_at": _iso(self.event.confirmed_at_utc) if self.event else None,
        }
