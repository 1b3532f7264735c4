"""Calendar helpers for everything that resets "daily".

Timestamps are stored in UTC. Day boundaries come from the configured
reference timezone, never from the host clock's local zone.
"""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from questlearn.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_date(moment: datetime | None = None, tz: ZoneInfo | None = None) -> date:
    """Calendar date of ``moment`` in the reference timezone."""
    moment = moment or utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(tz or settings.timezone).date()


def start_of_day(day: date, tz: ZoneInfo | None = None) -> datetime:
    """Midnight of ``day`` in the reference timezone, expressed in UTC."""
    local_midnight = datetime.combine(day, time.min, tzinfo=tz or settings.timezone)
    return local_midnight.astimezone(timezone.utc)


def start_of_today(now: datetime | None = None, tz: ZoneInfo | None = None) -> datetime:
    return start_of_day(local_date(now, tz), tz)
