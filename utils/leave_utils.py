from datetime import date, datetime
from typing import Union

from utils.exceptions import InvalidDate, InvalidRange

DateInput = Union[str, date, datetime]


def to_calendar_date(value: DateInput) -> date:
    """Reduce a date, datetime or ISO-8601 string to its calendar date.

    Time-of-day and any UTC offset are dropped, so ``2026-03-01T23:59`` and
    ``2026-03-01T00:00+05:30`` both become ``2026-03-01``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidDate(details={"value": value})

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidDate(details={"value": value})


def calculate_leave_days(start_date: DateInput, end_date: DateInput) -> int:
    """Number of leave days between two dates, inclusive of both ends."""
    start = to_calendar_date(start_date)
    end = to_calendar_date(end_date)

    if end < start:
        raise InvalidRange(details={"start_date": start.isoformat(), "end_date": end.isoformat()})

    return (end - start).days + 1
