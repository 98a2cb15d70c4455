from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import as_utc, parse_iso_date
from ..core.enums import PunchFailure, PunchKind, PunchOutcome, SyncStatus
from ..core.exceptions import ValidationError
from ..geofence.model import Coordinate
from ..shifts.model import Classification


def _dt_or_none(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return as_utc(datetime.fromisoformat(str(value)))


@dataclass(frozen=True)
class PunchEvent:
    """One punch attempt. Immutable once its outcome leaves PENDING."""

    kind: PunchKind
    requested_at_utc: datetime
    location: Optional[Coordinate] = None
    outcome: PunchOutcome = PunchOutcome.PENDING
    reason: Optional[PunchFailure] = None
    message: Optional[str] = None
    confirmed_at_utc: Optional[datetime] = None
    classification: Optional[Classification] = None

    def accepted(
        self,
        *,
        confirmed_at_utc: Optional[datetime],
        classification: Optional[Classification] = None,
        message: Optional[str] = None,
    ) -> "PunchEvent":
        self._require_pending()
        return replace(
            self,
            outcome=PunchOutcome.ACCEPTED,
            confirmed_at_utc=as_utc(confirmed_at_utc) if confirmed_at_utc else None,
            classification=classification or self.classification,
            message=message,
        )

    def rejected(self, reason: PunchFailure, message: str) -> "PunchEvent":
        self._require_pending()
        return replace(self, outcome=PunchOutcome.REJECTED, reason=reason, message=message)

    def with_location(self, location: Coordinate) -> "PunchEvent":
        self._require_pending()
        return replace(self, location=location)

    def with_classification(self, classification: Classification) -> "PunchEvent":
        self._require_pending()
        return replace(self, classification=classification)

    def _require_pending(self) -> None:
        if self.outcome != PunchOutcome.PENDING:
            raise ValidationError("Punch outcome is already settled")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "requested_at_utc": as_utc(self.requested_at_utc).isoformat(),
            "location": self.location.to_dict() if self.location else None,
            "outcome": self.outcome.value,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "confirmed_at_utc": as_utc(self.confirmed_at_utc).isoformat() if self.confirmed_at_utc else None,
            "classification": self.classification.to_dict() if self.classification else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PunchEvent":
        location = data.get("location")
        reason = data.get("reason")
        classification = data.get("classification")
        return cls(
            kind=PunchKind(data["kind"]),
            requested_at_utc=as_utc(datetime.fromisoformat(str(data["requested_at_utc"]))),
            location=Coordinate.from_dict(location) if location else None,
            outcome=PunchOutcome(data.get("outcome", PunchOutcome.PENDING.value)),
            reason=PunchFailure(reason) if reason else None,
            message=data.get("message"),
            confirmed_at_utc=_dt_or_none(data.get("confirmed_at_utc")),
            classification=Classification.from_dict(classification) if classification else None,
        )


@dataclass(frozen=True)
class LedgerEntry:
    local_date: date
    event: PunchEvent
    sync_status: SyncStatus
    recorded_at_utc: datetime

    @property
    def kind(self) -> PunchKind:
        return self.event.kind

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_date": self.local_date.isoformat(),
            "event": self.event.to_dict(),
            "sync_status": self.sync_status.value,
            "recorded_at_utc": as_utc(self.recorded_at_utc).isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LedgerEntry":
        return cls(
            local_date=parse_iso_date(str(data["local_date"])),
            event=PunchEvent.from_dict(data["event"]),
            sync_status=SyncStatus(data["sync_status"]),
            recorded_at_utc=as_utc(datetime.fromisoformat(str(data["recorded_at_utc"]))),
        )
