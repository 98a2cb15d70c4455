from __future__ import annotations

from ...core.enums import ShiftStatus
from ..model import ShiftWindow
from .base import ClassificationStrategy, StatusDecision


class OnTimeStrategy(ClassificationStrategy):
    """Check-in at or before start, check-out at or after end."""

    def decide(self, *, civil_minutes: int, window: ShiftWindow) -> StatusDecision:
        return StatusDecision(status=ShiftStatus.ON_TIME)
