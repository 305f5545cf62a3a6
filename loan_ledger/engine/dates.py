"""Calendar helpers for schedules and overdue counting."""

from datetime import date, datetime, time
from typing import Any

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(value: Any) -> date:
    """Coerce a date, datetime or ISO 8601 string into a ``date``.

    Raises
    ------
    ValueError
        If the value is empty or cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError("parse_date: empty string")
        return date_parser.isoparse(s).date()
    raise ValueError(f"parse_date: unsupported value {value!r}")


def add_months(start: date, months: int) -> date:
    """Step ``start`` by whole calendar months.

    The day of month is kept; when the target month is shorter it is clamped
    to that month's last day (2024-01-31 + 1 month -> 2024-02-29).
    """
    return start + relativedelta(months=months)


def as_naive_datetime(moment: date | datetime) -> datetime:
    """Read a date as its midnight and an aware datetime in its own wall clock."""
    if isinstance(moment, datetime):
        return moment.replace(tzinfo=None)
    return datetime.combine(moment, time.min)


def overdue_days(due_date: date, as_of: date | datetime) -> int:
    """Days elapsed since midnight of ``due_date``, partial days rounded up.

    Returns 0 when ``as_of`` is not after the due date's midnight.
    """
    delta = as_naive_datetime(as_of) - datetime.combine(due_date, time.min)
    if delta.total_seconds() <= 0:
        return 0
    return delta.days + (1 if delta.seconds or delta.microseconds else 0)
