"""
Standardized Date/Time Handling Utilities

CRITICAL RULES:
- Always store timestamps as UTC (use to_utc())
- Day keys (streaks, daily artifacts, report buckets) are computed in ONE zone
  for every user: DAY_BOUNDARY_TIMEZONE. Never derive them from a client's
  local wall clock.
- Never mix naive and aware datetimes; naive input is assumed to be UTC
"""

import logging
from datetime import datetime, date, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from journal_coach.config import DAY_BOUNDARY_TIMEZONE
from journal_coach.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


@lru_cache(maxsize=1)
def get_day_boundary_zone() -> ZoneInfo:
    """
    Zone in which calendar days start and end for all users

    Raises:
        ConfigurationError: DAY_BOUNDARY_TIMEZONE is not a valid IANA name
    """
    try:
        return ZoneInfo(DAY_BOUNDARY_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(
            message=f"Invalid DAY_BOUNDARY_TIMEZONE '{DAY_BOUNDARY_TIMEZONE}'",
            config_key="DAY_BOUNDARY_TIMEZONE",
            cause=e
        )


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC; naive datetimes are taken to already be UTC

    Args:
        dt: Datetime to convert

    Returns:
        Timezone-aware datetime in UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def day_key(dt: datetime) -> date:
    """
    Calendar date of a timestamp in the day-boundary zone

    Example (DAY_BOUNDARY_TIMEZONE=UTC):
        day_key(datetime(2026, 1, 1, 23, 30, tzinfo=ZoneInfo("America/New_York")))
        -> date(2026, 1, 2)
    """
    return to_utc(dt).astimezone(get_day_boundary_zone()).date()


def day_gap(earlier: date, later: date) -> int:
    """Whole calendar days from earlier to later (negative if out of order)"""
    return (later - earlier).days


def days_in_window(start: datetime, end: datetime) -> list[date]:
    """
    Every day key touched by [start, end], oldest first

    Args:
        start: Window start
        end: Window end (inclusive)

    Returns:
        List of dates
    """
    first = day_key(start)
    last = day_key(end)
    if last < first:
        return []
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]
