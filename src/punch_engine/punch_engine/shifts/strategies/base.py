from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...core.enums import ShiftStatus
from ..model import ShiftWindow


@dataclass(frozen=True)
class StatusDecision:
    status: ShiftStatus
    offset_minutes: int = 0


class ClassificationStrategy(ABC):
    """Strategy Pattern: encapsulate how a punch is rated against the shift window."""

    @abstractmethod
    def decide(self, *, civil_minutes: int, window: ShiftWindow) -> StatusDecision:
        raise NotImplementedError
