from __future__ import annotations

import math
from typing import Optional

from ..core.constants import EARTH_RADIUS_METERS
from ..core.enums import PunchMethod
from ..core.exceptions import UnknownWorkplace
from .model import GeoPoint, GeofenceZone, LocationCheck
from .repository import WorkplaceRepository


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle (haversine) distance in meters."""

    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_within_zone(point: GeoPoint, zone: GeofenceZone) -> bool:
    """Containment is inclusive: a point exactly on the boundary is inside."""

    return distance_meters(point, zone.center) <= float(zone.radius_meters)


class GeofenceValidator:
    """Decides whether a punch location is inside a workplace's zones.

    A workplace with no active zone is unrestricted.
    """

    def __init__(self, workplaces: WorkplaceRepository):
        self._workplaces = workplaces

    def is_within_any_active_zone(
        self,
        point: GeoPoint,
        workplace_id: int,
        *,
        method: Optional[PunchMethod] = None,
    ) -> bool:
        return self.verify_location(point, workplace_id, method=method).compliant

    def verify_location(
        self,
        point: GeoPoint,
        workplace_id: int,
        *,
        method: Optional[PunchMethod] = None,
    ) -> LocationCheck:
        workplace = self._workplaces.get_workplace(int(workplace_id))
        if not workplace or not workplace.is_active:
            raise UnknownWorkplace()

        zones = [z for z in self._workplaces.list_active_zones(workplace.workplace_id) if z.is_active]
        if not zones:
            return LocationCheck(workplace_id=workplace.workplace_id, compliant=True)

        nearest: GeofenceZone | None = None
        nearest_distance = math.inf
        compliant = False
        for zone in zones:
            d = distance_meters(point, zone.center)
            if d < nearest_distance:
                nearest, nearest_distance = zone, d
            # A zone only vouches for methods it allows.
            if zone.allows(method) and d <= float(zone.radius_meters):
                compliant = True

        return LocationCheck(
            workplace_id=workplace.workplace_id,
            compliant=compliant,
            nearest_zone_id=nearest.zone_id if nearest else None,
            distance_meters=nearest_distance,
            radius_meters=float(nearest.radius_meters) if nearest else None,
        )
