from __future__ import annotations

from datetime import date, datetime, timedelta


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def to_hours(value: timedelta) -> float:
    return round(value.total_seconds() / 3600, 2)


def to_minutes(value: timedelta) -> int:
    return int(value.total_seconds() // 60)


def parse_iso_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
