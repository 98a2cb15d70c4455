from __future__ import annotations

import math

from ..core.exceptions import ValidationError


def require_latitude(value: float, field_name: str = "latitude") -> float:
    v = float(value)
    if math.isnan(v) or not -90.0 <= v <= 90.0:
        raise ValidationError(f"{field_name} must be between -90 and 90")
    return v


def require_longitude(value: float, field_name: str = "longitude") -> float:
    v = float(value)
    if math.isnan(v) or not -180.0 <= v <= 180.0:
        raise ValidationError(f"{field_name} must be between -180 and 180")
    return v


def require_positive(value: float, field_name: str) -> float:
    v = float(value)
    if math.isnan(v) or v <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return v
