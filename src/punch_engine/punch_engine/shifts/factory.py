from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import PunchKind
from .model import ShiftWindow
from .strategies.base import ClassificationStrategy
from .strategies.early_strategy import EarlyStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy


@dataclass
class ClassificationStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on the civil minute of the punch."""

    def for_checkin(self, *, civil_minutes: int, window: ShiftWindow) -> ClassificationStrategy:
        # Exactly at start is on time.
        if civil_minutes > window.start_minutes:
            return LateStrategy()
        return OnTimeStrategy()

    def for_checkout(self, *, civil_minutes: int, window: ShiftWindow) -> ClassificationStrategy:
        if civil_minutes < window.end_minutes:
            return EarlyStrategy()
        return OnTimeStrategy()

    def for_kind(self, kind: PunchKind, *, civil_minutes: int, window: ShiftWindow) -> ClassificationStrategy:
        if kind == PunchKind.IN:
            return self.for_checkin(civil_minutes=civil_minutes, window=window)
        return self.for_checkout(civil_minutes=civil_minutes, window=window)
