from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return value.strip()


def require_int_range(value, field_name: str, *, minimum: int, maximum: int | None = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number < minimum or (maximum is not None and number > maximum):
        if maximum is None:
            raise ValidationError(f"{field_name} must be >= {minimum}")
        raise ValidationError(f"{field_name} must be between {minimum} and {maximum}")
    return number


def require_positive_number(value, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not number > 0:
        raise ValidationError(f"{field_name} must be > 0")
    return number
