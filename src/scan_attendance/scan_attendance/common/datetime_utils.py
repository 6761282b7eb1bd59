from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def now_utc() -> datetime:
    """Current UTC time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_epoch_ms(value: datetime) -> int:
    return int(ensure_aware(value).timestamp() * 1000)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc).isoformat()


def parse_wall_clock(value: Any) -> Optional[datetime]:
    """Normalize a stored timestamp into an aware UTC datetime.

    Stores may hand back ISO strings, epoch milliseconds or datetimes
    (MySQL JSON columns and older documents differ).
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
    if isinstance(value, str):
        return ensure_aware(datetime.fromisoformat(value)).astimezone(timezone.utc)
    raise TypeError(f"Unsupported timestamp value: {value!r}")
