from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..common.datetime_utils import civil_minutes_since_midnight
from ..core.enums import PunchKind
from .factory import ClassificationStrategyFactory
from .model import Classification, ShiftWindow


class ShiftWindowClassifier:
    """Rates a punch instant against the shift window.

    Purely advisory: the result never blocks a punch. The instant is converted
    to the window's fixed civil offset; the device timezone is never used.
    """

    def __init__(self, strategy_factory: Optional[ClassificationStrategyFactory] = None):
        self._factory = strategy_factory or ClassificationStrategyFactory()

    def classify(self, instant: datetime, window: ShiftWindow, kind: PunchKind) -> Classification:
        minutes = civil_minutes_since_midnight(instant, window.timezone_offset_minutes)
        strategy = self._factory.for_kind(kind, civil_minutes=minutes, window=window)
        decision = strategy.decide(civil_minutes=minutes, window=window)
        return Classification(kind=kind, status=decision.status, offset_minutes=decision.offset_minutes)
