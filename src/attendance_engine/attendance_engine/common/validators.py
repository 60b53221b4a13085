from __future__ import annotations

from datetime import date

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_present(value, field_name: str):
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required")
    return value


def require_latitude(value: float) -> float:
    lat = float(value)
    if not -90.0 <= lat <= 90.0:
        raise ValidationError(f"Latitude out of range: {value!r}")
    return lat


def require_longitude(value: float) -> float:
    lng = float(value)
    if not -180.0 <= lng <= 180.0:
        raise ValidationError(f"Longitude out of range: {value!r}")
    return lng


def require_date_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("End date must be on or after start date")
