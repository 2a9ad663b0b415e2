# src/meriter_core/db/time.py
"""Time utilities for database models and the daily quota window."""

from datetime import UTC, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from meriter_core.core.settings import settings


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def quota_zone() -> tzinfo:
    """Return the timezone the daily quota boundary is computed in."""
    if settings.quota_timezone.upper() == "UTC":
        return UTC
    return ZoneInfo(settings.quota_timezone)


def start_of_day(now: datetime | None = None) -> datetime:
    """Return local midnight of the current quota day, expressed in UTC."""
    local_now = (as_utc(now) or utcnow()).astimezone(quota_zone())
    midnight = datetime.combine(local_now.date(), time.min, tzinfo=quota_zone())
    return midnight.astimezone(UTC)


def next_midnight(now: datetime | None = None) -> datetime:
    """Return the next local midnight after ``now``, expressed in UTC."""
    local_now = (as_utc(now) or utcnow()).astimezone(quota_zone())
    tomorrow = local_now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time.min, tzinfo=quota_zone()).astimezone(UTC)
