from __future__ import annotations

from ...core.enums import ShiftStatus
from ..model import ShiftWindow
from .base import ClassificationStrategy, StatusDecision


class LateStrategy(ClassificationStrategy):
    """Late check-in."""

    def decide(self, *, civil_minutes: int, window: ShiftWindow) -> StatusDecision:
        return StatusDecision(status=ShiftStatus.LATE, offset_minutes=civil_minutes - window.start_minutes)
