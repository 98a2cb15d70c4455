from __future__ import annotations

from ...core.enums import ShiftStatus
from ..model import ShiftWindow
from .base import ClassificationStrategy, StatusDecision


class EarlyStrategy(ClassificationStrategy):
    """Early check-out."""

    def decide(self, *, civil_minutes: int, window: ShiftWindow) -> StatusDecision:
        return StatusDecision(status=ShiftStatus.EARLY, offset_minutes=window.end_minutes - civil_minutes)
