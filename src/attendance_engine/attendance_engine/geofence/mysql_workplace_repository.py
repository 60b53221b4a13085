from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import PunchMethod
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import GeoPoint, GeofenceZone, Workplace
from .repository import WorkplaceRepository


def _parse_methods(value: str | None) -> frozenset[PunchMethod]:
    if not value:
        return frozenset(PunchMethod)
    return frozenset(PunchMethod(v.strip()) for v in value.split(",") if v.strip())


class MySQLWorkplaceRepository(WorkplaceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_workplace(self, workplace_id: int) -> Optional[Workplace]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT workplace_id, name, is_active FROM workplaces WHERE workplace_id=%s",
                (int(workplace_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Workplace(
                workplace_id=int(r["workplace_id"]),
                name=r["name"],
                is_active=bool(r["is_active"]),
            )

    def list_active_zones(self, workplace_id: int) -> Sequence[GeofenceZone]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT zone_id, workplace_id, name, center_lat, center_lng,
                       radius_meters, allowed_methods, is_active
                FROM geofence_zones
                WHERE workplace_id=%s AND is_active=1
                ORDER BY zone_id
                """,
                (int(workplace_id),),
            )
            return [
                GeofenceZone(
                    zone_id=int(r["zone_id"]),
                    workplace_id=int(r["workplace_id"]),
                    name=r["name"],
                    center=GeoPoint(lat=float(r["center_lat"]), lng=float(r["center_lng"])),
                    radius_meters=float(r["radius_meters"]),
                    allowed_methods=_parse_methods(r.get("allowed_methods")),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            ]
