"""Calendar-day helpers.

Datetimes may be naive (interpreted as local wall-clock time) or aware. Day
arithmetic goes through timedelta on the wall clock, so adding N days keeps
the time of day even across a DST transition when tzinfo is a zoneinfo zone.
"""

import math
from datetime import date, datetime, time, timedelta, tzinfo


def add_days(moment: datetime, days: int) -> datetime:
    return moment + timedelta(days=days)


def local_date(moment: datetime, tz: tzinfo | None = None) -> date:
    """
    Calendar date of a moment.

    Naive datetimes are local wall-clock time. The result is the date in tz,
    or in the system local zone when tz is None.
    """
    if moment.tzinfo is None and tz is None:
        return moment.date()
    return moment.astimezone(tz).date()


def start_of_day(day: date, tz: tzinfo | None = None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)


def day_bounds(day: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Half-open [start, end) range covering one calendar day."""
    start = start_of_day(day, tz)
    return start, start_of_day(day + timedelta(days=1), tz)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    if value < 0:
        return -round_half_up(-value)
    floor = math.floor(value)
    return floor + 1 if value - floor >= 0.5 else floor
