# backend/modules/punchcards/services/clock.py

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Tuple
from zoneinfo import ZoneInfo

from core.config import get_settings


class Clock:
    """Source of "now" for the punch engine; timestamps are naive UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


def get_clock() -> Clock:
    """FastAPI dependency; tests override it with a fixed clock."""
    return Clock()


def resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def local_day_bounds(now: datetime, tz: tzinfo = None) -> Tuple[datetime, datetime]:
    """
    Start of the current and of the next calendar day in ``tz``.

    ``now`` and both returned datetimes are naive UTC, ready to compare with
    stored punch timestamps.
    """
    if tz is None:
        tz = resolve_timezone(get_settings().punch_timezone)

    local_now = now.replace(tzinfo=timezone.utc).astimezone(tz)
    local_midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    # build tomorrow from the date, not by adding 24h, so DST days stay correct
    next_date = local_midnight.date() + timedelta(days=1)
    local_next_midnight = datetime(
        next_date.year, next_date.month, next_date.day, tzinfo=tz
    )

    def to_naive_utc(moment: datetime) -> datetime:
        return moment.astimezone(timezone.utc).replace(tzinfo=None)

    return to_naive_utc(local_midnight), to_naive_utc(local_next_midnight)
