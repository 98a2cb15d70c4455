from __future__ import annotations

import math
from typing import Optional

from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import LocationUnavailableError
from .model import Coordinate, GeofenceResult, OfficeAnchor


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon pairs (degrees)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_METERS * c


class GeofenceValidator:
    """Decides whether a location fix is inside the office radius.

    Pure: no I/O, no clock. The comparison uses the full-precision distance;
    only the display value is rounded.
    """

    def evaluate(self, current: Optional[Coordinate], anchor: OfficeAnchor) -> GeofenceResult:
        if current is None:
            # Never treat a missing fix as "outside the radius".
            raise LocationUnavailableError()

        distance = haversine_meters(current.latitude, current.longitude, anchor.latitude, anchor.longitude)
        return GeofenceResult(within_radius=distance <= anchor.radius_meters, distance_meters=distance)
