from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Settable UTC clock injected wherever the code asks for `clock`."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def fixed_now() -> datetime:
    # 2025-01-06 09:30 IST
    return datetime(2025, 1, 6, 4, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)
