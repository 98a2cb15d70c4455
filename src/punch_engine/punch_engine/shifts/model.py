from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Any, Mapping

from ..common.datetime_utils import parse_hhmm
from ..core.constants import DEFAULT_SHIFT_END, DEFAULT_SHIFT_START, DEFAULT_TIMEZONE_OFFSET_MINUTES
from ..core.enums import PunchKind, ShiftStatus
from ..core.exceptions import ValidationError


def _clock_label(value: time) -> str:
    # 09:30 -> "9:30 AM"
    return value.strftime("%I:%M %p").lstrip("0")


@dataclass(frozen=True)
class ShiftWindow:
    """Working hours in a fixed civil timezone. start < end within one day."""

    start_time: time
    end_time: time
    timezone_offset_minutes: int = DEFAULT_TIMEZONE_OFFSET_MINUTES

    def __post_init__(self) -> None:
        if self.start_minutes >= self.end_minutes:
            raise ValidationError("Shift start must be before shift end within the same day")
        if not -14 * 60 <= self.timezone_offset_minutes <= 14 * 60:
            raise ValidationError("Timezone offset must be within +/-14 hours")

    @property
    def start_minutes(self) -> int:
        return self.start_time.hour * 60 + self.start_time.minute

    @property
    def end_minutes(self) -> int:
        return self.end_time.hour * 60 + self.end_time.minute

    @classmethod
    def from_settings(cls, data: Mapping[str, Any]) -> "ShiftWindow":
        return cls(
            start_time=parse_hhmm(str(data.get("start", DEFAULT_SHIFT_START))),
            end_time=parse_hhmm(str(data.get("end", DEFAULT_SHIFT_END))),
            timezone_offset_minutes=int(data.get("timezone_offset_minutes", DEFAULT_TIMEZONE_OFFSET_MINUTES)),
        )


@dataclass(frozen=True)
class Classification:
    kind: PunchKind
    status: ShiftStatus
    offset_minutes: int = 0

    def warning(self, window: ShiftWindow) -> str:
        """Alert text for a late check-in / early check-out, empty when on time."""
        plural = "s" if self.offset_minutes > 1 else ""
        if self.status == ShiftStatus.LATE:
            return (
                f"You are checking in {self.offset_minutes} minute{plural} after "
                f"{_clock_label(window.start_time)}. This will be marked as a late check-in."
            )
        if self.status == ShiftStatus.EARLY:
            return (
                f"You are checking out {self.offset_minutes} minute{plural} before "
                f"{_clock_label(window.end_time)}. This will be marked as an early check-out."
            )
        return ""

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "status": self.status.value, "offset_minutes": self.offset_minutes}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Classification":
        return cls(
            kind=PunchKind(data["kind"]),
            status=ShiftStatus(data["status"]),
            offset_minutes=int(data.get("offset_minutes") or 0),
        )
