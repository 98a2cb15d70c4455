from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from ..common.datetime_utils import utc_now
from ..core.constants import DEFAULT_LOCATION_MAX_AGE_SECONDS, DEFAULT_LOCATION_TIMEOUT_SECONDS
from ..core.exceptions import LocationUnavailableError
from .model import Coordinate

logger = logging.getLogger(__name__)


class LocationProvider(Protocol):
    """Device location collaborator (GPS, OS location service, UI shell)."""

    async def has_permission(self) -> bool:
        raise NotImplementedError

    async def request_permission(self) -> bool:
        raise NotImplementedError

    async def get_current_coordinate(self) -> Optional[Coordinate]:
        raise NotImplementedError


class LocationService:
    """Permission gate + bounded acquisition on top of a LocationProvider."""

    def __init__(self, provider: LocationProvider, *, timeout_seconds: float = DEFAULT_LOCATION_TIMEOUT_SECONDS):
        self._provider = provider
        self._timeout = float(timeout_seconds)

    async def acquire(self) -> Coordinate:
        if not await self._provider.has_permission():
            granted = await self._provider.request_permission()
            if not granted:
                raise LocationUnavailableError("Location permission denied. Please enable location to punch.")

        try:
            coordinate = await asyncio.wait_for(self._provider.get_current_coordinate(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Location fix timed out after %.1fs", self._timeout)
            raise LocationUnavailableError("Timed out while getting your location. Please try again.") from exc
        except Exception as exc:
            logger.warning("Location provider failed: %s", exc)
            raise LocationUnavailableError() from exc

        if coordinate is None:
            raise LocationUnavailableError()
        return coordinate


class ReportedLocationProvider:
    """Location provider fed by the UI shell.

    The shell owns the OS permission dialog and GPS; it reports fixes through
    `report()`. A fix older than `max_age_seconds` is treated as unavailable.
    """

    def __init__(
        self,
        *,
        max_age_seconds: float = DEFAULT_LOCATION_MAX_AGE_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._max_age = float(max_age_seconds)
        self._clock = clock
        self._permission_granted = False
        self._latest: Optional[Coordinate] = None
        self._reported_at: Optional[datetime] = None

    def report(self, coordinate: Coordinate) -> None:
        self._latest = coordinate
        self._reported_at = self._clock()
        self._permission_granted = True

    def revoke(self) -> None:
        self._permission_granted = False
        self._latest = None
        self._reported_at = None

    async def has_permission(self) -> bool:
        return self._permission_granted

    async def request_permission(self) -> bool:
        # The shell asks the user; here we can only report what it told us.
        return self._permission_granted

    async def get_current_coordinate(self) -> Optional[Coordinate]:
        if self._latest is None or self._reported_at is None:
            return None
        age = (self._clock() - self._reported_at).total_seconds()
        if age > self._max_age:
            logger.info("Discarding stale location fix (%.0fs old)", age)
            return None
        return self._latest
