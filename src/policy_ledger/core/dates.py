"""Calendar helpers for premium schedules and identifier buckets."""

from __future__ import annotations

from datetime import date, datetime, timezone

from dateutil.relativedelta import relativedelta

MONTHLY = "monthly"
QUARTERLY = "quarterly"
YEARLY = "yearly"
ONE_TIME = "one-time"

PREMIUM_FREQUENCIES = (MONTHLY, QUARTERLY, YEARLY, ONE_TIME)

_INTERVALS = {
    MONTHLY: relativedelta(months=1),
    QUARTERLY: relativedelta(months=3),
    YEARLY: relativedelta(years=1),
}


def add_interval(start: date, frequency: str) -> date | None:
    """Return the next premium due date after ``start`` for a frequency.

    Month arithmetic clamps to the last day of the target month, so
    2024-01-31 + monthly is 2024-02-29. ``one-time`` has no next due date.
    """
    if frequency == ONE_TIME:
        return None
    try:
        interval = _INTERVALS[frequency]
    except KeyError as error:
        raise ValueError(f"Unknown premium frequency: {frequency}") from error
    return start + interval


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return utc_now().date()


def year_bucket(on_date: date) -> str:
    return on_date.strftime("%Y")


def year_month_bucket(on_date: date) -> str:
    return on_date.strftime("%Y%m")


def day_bucket(on_date: date) -> str:
    return on_date.strftime("%Y%m%d")
