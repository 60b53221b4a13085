from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from ..common.validators import require_latitude, require_longitude
from ..core.enums import PunchMethod
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class GeoPoint:
    """A reported device location (degrees; accuracy in meters)."""

    lat: float
    lng: float
    accuracy: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "lat", require_latitude(self.lat))
        object.__setattr__(self, "lng", require_longitude(self.lng))
        if self.accuracy is not None and float(self.accuracy) < 0:
            raise ValidationError("Accuracy cannot be negative")


@dataclass(frozen=True)
class Workplace:
    workplace_id: int
    name: str
    is_active: bool = True


@dataclass(frozen=True)
class GeofenceZone:
    """Circular boundary around a workplace coordinate."""

    zone_id: int
    workplace_id: int
    name: str
    center: GeoPoint
    radius_meters: float
    is_active: bool = True
    allowed_methods: FrozenSet[PunchMethod] = field(default_factory=lambda: frozenset(PunchMethod))

    def __post_init__(self):
        if not self.radius_meters or float(self.radius_meters) <= 0:
            raise ValidationError("Zone radius must be positive")

    def allows(self, method: Optional[PunchMethod]) -> bool:
        return method is None or method in self.allowed_methods


@dataclass(frozen=True)
class LocationCheck:
    """Result of checking one point against a workplace's zones."""

    workplace_id: int
    compliant: bool
    nearest_zone_id: Optional[int] = None
    distance_meters: Optional[float] = None
    radius_meters: Optional[float] = None
