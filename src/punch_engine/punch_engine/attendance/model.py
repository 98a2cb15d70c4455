from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_date, parse_server_timestamp
from ..core.enums import PunchKind, PunchPhase


def _envelope_data(body: Any) -> Mapping[str, Any]:
    if isinstance(body, Mapping):
        data = body.get("data")
        if isinstance(data, Mapping):
            return data
        return body
    return {}


def _minutes(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class PunchConfirmation:
    """Server acknowledgement of a recorded punch."""

    kind: PunchKind
    confirmed_at_utc: Optional[datetime]
    message: Optional[str] = None
    is_late: bool = False
    late_by_minutes: int = 0
    is_early: bool = False
    early_by_minutes: int = 0

    @classmethod
    def from_body(cls, kind: PunchKind, body: Any, *, timezone_offset_minutes: int) -> "PunchConfirmation":
        data = _envelope_data(body)
        # Prefer the ISO form; the formatted form is civil time.
        confirmed = parse_server_timestamp(data.get("PunchTimeISO"), timezone_offset_minutes)
        if confirmed is None:
            confirmed = parse_server_timestamp(data.get("PunchTime"), timezone_offset_minutes)
        message = body.get("message") if isinstance(body, Mapping) else None
        return cls(
            kind=kind,
            confirmed_at_utc=confirmed,
            message=str(message) if message else None,
            is_late=bool(data.get("IsLate", False)),
            late_by_minutes=_minutes(data.get("LateByMinutes")),
            is_early=bool(data.get("IsEarly", False)),
            early_by_minutes=_minutes(data.get("EarlyByMinutes")),
        )


@dataclass(frozen=True)
class RemotePunchStatus:
    """Today's punch state as the server sees it."""

    phase: PunchPhase
    local_date: Optional[date] = None
    last_punch_at_utc: Optional[datetime] = None

    @classmethod
    def from_body(cls, body: Any, *, timezone_offset_minutes: int) -> "RemotePunchStatus":
        data = _envelope_data(body)
        punch = data.get("punch") if isinstance(data.get("punch"), Mapping) else {}
        today = data.get("today") if isinstance(data.get("today"), Mapping) else {}

        code = _minutes(punch.get("PunchType"))
        phase = {1: PunchPhase.PUNCHED_IN, 2: PunchPhase.PUNCHED_OUT}.get(code, PunchPhase.NOT_PUNCHED)

        local_date = None
        raw_date = today.get("date")
        if isinstance(raw_date, str) and raw_date:
            try:
                local_date = parse_iso_date(raw_date[:10])
            except ValueError:
                local_date = None

        return cls(
            phase=phase,
            local_date=local_date,
            last_punch_at_utc=parse_server_timestamp(punch.get("PunchDateTimeISO"), timezone_offset_minutes),
        )
