from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..common.validators import require_latitude, require_longitude, require_positive
from ..core.constants import DEFAULT_RADIUS_METERS


@dataclass(frozen=True)
class Coordinate:
    """A location fix reported by the location provider."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude, "accuracy": self.accuracy}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Coordinate":
        accuracy = data.get("accuracy")
        return cls(
            latitude=require_latitude(data["latitude"]),
            longitude=require_longitude(data["longitude"]),
            accuracy=float(accuracy) if accuracy is not None else None,
        )


@dataclass(frozen=True)
class OfficeAnchor:
    """Office location and allowed punch radius. Constant for the process."""

    latitude: float
    longitude: float
    radius_meters: float

    def __post_init__(self) -> None:
        require_latitude(self.latitude)
        require_longitude(self.longitude)
        require_positive(self.radius_meters, "radius_meters")

    @classmethod
    def from_settings(cls, data: Mapping[str, Any]) -> "OfficeAnchor":
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            radius_meters=float(data.get("radius_meters", DEFAULT_RADIUS_METERS)),
        )


@dataclass(frozen=True)
class GeofenceResult:
    within_radius: bool
    distance_meters: float

    @property
    def rounded_distance(self) -> int:
        """Distance for display, to the nearest whole meter."""
        return int(round(self.distance_meters))

    @property
    def message(self) -> str:
        return f"You are {self.rounded_distance}m from office"
