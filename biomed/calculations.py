"""Helper functions for age, expiry and date calculations."""

from datetime import date, datetime
from typing import Optional, Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

DateLike = Union[date, datetime, str, None]


def to_date(value: DateLike) -> Optional[date]:
    """
    Normalize a stored date value to a calendar date.

    Accepts date/datetime objects (YAML may load unquoted dates as such),
    ISO strings with or without a time part, None or an empty string.
    Raises ValueError for strings that are not ISO dates.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    return isoparse(text).date()


def to_datetime(value: DateLike) -> Optional[datetime]:
    """Like to_date, but keeps the time part (date-only values become midnight)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    return isoparse(text)


def yesterday(today: Optional[date] = None) -> date:
    """Comparison baseline for expiry and past-date checks."""
    return (today or date.today()) - relativedelta(days=1)


def months_between(start: date, now: date) -> int:
    """
    Whole calendar months from start to now.

    Day of month is ignored, so 2024-01-31 -> 2024-02-01 counts as one month.
    """
    return (now.year - start.year) * 12 + (now.month - start.month)


def age_in_years(installation_date: DateLike, today: Optional[date] = None) -> Optional[float]:
    """Fractional age in years, used by the age-range filter."""
    installed = to_date(installation_date)
    if installed is None:
        return None
    return months_between(installed, today or date.today()) / 12


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_age(installation_date: DateLike, today: Optional[date] = None) -> str:
    """
    Format equipment age, e.g. '4 years 2 months', '1 year', '5 months'.

    Missing dates render as '-'. Installation dates in the future count as
    zero months.
    """
    installed = to_date(installation_date)
    if installed is None:
        return "-"
    months = max(months_between(installed, today or date.today()), 0)
    years, remaining = divmod(months, 12)

    if years == 0:
        return _plural(remaining, "month")
    if remaining == 0:
        return _plural(years, "year")
    return f"{_plural(years, 'year')} {_plural(remaining, 'month')}"


def is_expired(service_end_date: DateLike, today: Optional[date] = None) -> bool:
    """
    Check whether a service contract has expired.

    The baseline is yesterday, so a contract ending today or yesterday is
    still active; it expires from two days past its end date. Records without
    an end date never expire.
    """
    end = to_date(service_end_date)
    if end is None:
        return False
    return end < yesterday(today)


def is_before_yesterday(value: DateLike, today: Optional[date] = None) -> bool:
    """True when value is strictly before yesterday (the past-date cutoff)."""
    day = to_date(value)
    if day is None:
        return False
    return day < yesterday(today)


def format_display_date(value: DateLike) -> str:
    """Format a date as 'Mar 20, 2024'; missing dates render as '-'."""
    day = to_date(value)
    if day is None:
        return "-"
    return f"{day:%b} {day.day}, {day.year}"
