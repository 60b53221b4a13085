from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Type, TypeVar

from flask import Flask, jsonify, request

from ..core.exceptions import DomainError, ValidationError
from ..geofence.model import GeoPoint
from .datetime_utils import parse_iso_date, parse_iso_datetime
from .validators import require_present

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

STATUS_BY_CATEGORY = {
    "validation": 400,
    "unauthorized": 403,
    "not-found": 404,
    "conflict": 409,
    "invariant": 422,
    "infrastructure": 503,
}

EMPLOYEE_HEADER = "X-Employee-Id"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(err: DomainError):
        status = STATUS_BY_CATEGORY.get(err.category, 400)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, err.reason)
        return jsonify(err.to_dict()), status


def current_employee_id() -> int:
    raw = (request.headers.get(EMPLOYEE_HEADER) or "").strip()
    if not raw.isdigit():
        raise ValidationError(f"{EMPLOYEE_HEADER} header is required")
    return int(raw)


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("JSON object body is required")
    return payload


def require_int(payload: dict, key: str) -> int:
    value = require_present(payload.get(key), key)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")


def require_date(payload: dict, key: str) -> date:
    value = require_present(payload.get(key), key)
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be YYYY-MM-DD")


def optional_datetime(payload: dict, key: str) -> datetime | None:
    """ISO-8601 device timestamp; None lets the service use server time."""

    value = payload.get(key)
    if value in (None, ""):
        return None
    try:
        parsed = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 datetime")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def require_enum(payload: dict, key: str, enum_cls: Type[E], default: E | None = None) -> E:
    value = payload.get(key)
    if value in (None, "") and default is not None:
        return default
    value = require_present(value, key)
    try:
        return enum_cls(str(value))
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{key} must be one of: {allowed}")


def parse_point(payload: dict) -> GeoPoint:
    lat = require_present(payload.get("latitude"), "latitude")
    lng = require_present(payload.get("longitude"), "longitude")
    accuracy = payload.get("accuracy")
    try:
        return GeoPoint(
            lat=float(lat),
            lng=float(lng),
            accuracy=float(accuracy) if accuracy not in (None, "") else None,
        )
    except (TypeError, ValueError):
        raise ValidationError("latitude, longitude and accuracy must be numbers")
