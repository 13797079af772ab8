"""Presence and type checks shared by the ledger operations."""

import math
from datetime import date, datetime
from numbers import Real
from typing import Any

from ..clock import ensure_utc
from ..errors import ValidationError
from ..models import GeoPoint


def require_str(value: Any, name: str) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(f"'{name}' is required and must be a string")
    return value


def optional_str(value: Any, name: str) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{name}' must be a string")
    return value


def require_number(value: Any, name: str) -> float:
    if value is None:
        raise ValidationError(f"'{name}' is required")
    return optional_number(value, name)


def optional_number(value: Any, name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"'{name}' must be a number")
    if not math.isfinite(value):
        raise ValidationError(f"'{name}' must be a finite number")
    return value


def parse_datetime(value: Any, name: str) -> datetime:
    """Accept a datetime, a date or an ISO-8601 string; result is UTC."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return ensure_utc(datetime(value.year, value.month, value.day))
    if not value or not isinstance(value, str):
        raise ValidationError(f"'{name}' is required and must be a date")
    try:
        # fromisoformat rejects a trailing Z before Python 3.11
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        raise ValidationError(f"'{name}' is not a valid ISO-8601 date") from None


def parse_geo(value: Any) -> GeoPoint | None:
    if value is None:
        return None
    return GeoPoint.from_value(value)
