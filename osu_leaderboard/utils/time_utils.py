"""Time helpers shared by the snapshot writer and run records."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def to_epoch_millis(dt: datetime) -> int:
    """Convert an aware datetime to integer milliseconds since the Unix epoch.

    Naive datetimes are assumed to be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def from_epoch_millis(ms: int) -> datetime:
    """Inverse of :func:`to_epoch_millis`, returning an aware UTC datetime."""
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
