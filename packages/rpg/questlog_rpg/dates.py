from __future__ import annotations

from datetime import UTC, datetime


def as_aware_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if getattr(dt, "tzinfo", None) is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    dt = as_aware_utc(now) or datetime.now(UTC)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def day_key(now: datetime | str | None = None) -> str:
    """UTC calendar day (``YYYY-MM-DD``) of a datetime or an ISO-8601 timestamp."""
    if isinstance(now, str):
        return now.split("T", 1)[0]
    dt = as_aware_utc(now) or datetime.now(UTC)
    return dt.date().strftime("%Y-%m-%d")
