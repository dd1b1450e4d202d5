"""Date helpers. Registry dates are calendar dates; all comparisons happen in UTC."""

import calendar
from datetime import date, datetime, time, timezone


def as_utc_midnight(value: date) -> datetime:
    """Registry dates carry no time; treat them as 00:00 UTC."""
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def ensure_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Calendar-month subtraction; the day is clamped to the target month's length."""
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
