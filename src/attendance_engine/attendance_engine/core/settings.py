from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from types import ModuleType

from .constants import (
    DEFAULT_EVENT_MAX_RETRIES,
    DEFAULT_STANDARD_DAY_HOURS,
    DEFAULT_STORE_TIMEOUT_SECONDS,
)


@dataclass(frozen=True)
class EngineSettings:
    """Deployment toggles passed explicitly into engine operations.

    Services keep a default instance and every operation accepts a
    ``settings=`` override, so a call never depends on ambient globals.
    """

    standard_day_hours: float = DEFAULT_STANDARD_DAY_HOURS
    geofence_strict: bool = False
    auto_approve_privileged: bool = False
    store_timeout_seconds: int = DEFAULT_STORE_TIMEOUT_SECONDS
    event_max_retries: int = DEFAULT_EVENT_MAX_RETRIES

    @property
    def standard_day(self) -> timedelta:
        return timedelta(hours=self.standard_day_hours)

    @classmethod
    def from_module(cls, settings: ModuleType) -> "EngineSettings":
        return cls(
            standard_day_hours=float(getattr(settings, "STANDARD_DAY_HOURS", DEFAULT_STANDARD_DAY_HOURS)),
            geofence_strict=bool(getattr(settings, "GEOFENCE_STRICT", False)),
            auto_approve_privileged=bool(getattr(settings, "AUTO_APPROVE_PRIVILEGED", False)),
            store_timeout_seconds=int(getattr(settings, "STORE_TIMEOUT_SECONDS", DEFAULT_STORE_TIMEOUT_SECONDS)),
            event_max_retries=int(getattr(settings, "EVENT_MAX_RETRIES", DEFAULT_EVENT_MAX_RETRIES)),
        )
