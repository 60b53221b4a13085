from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import GeofenceZone, Workplace


class WorkplaceRepository(Protocol):
    def get_workplace(self, workplace_id: int) -> Optional[Workplace]:
        raise NotImplementedError

    def list_active_zones(self, workplace_id: int) -> Sequence[GeofenceZone]:
        raise NotImplementedError
