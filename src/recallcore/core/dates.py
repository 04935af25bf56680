"""
Date Utilities
==============
Day-granular date handling for due filtering.

Review dates travel as serialized values (ISO-8601 strings in practice, but
``datetime``, ``date`` and epoch-millisecond numbers are accepted too). All
comparisons happen on local calendar days: a value is first converted to local
time when it carries a timezone, then truncated to 00:00.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from loguru import logger

from .exceptions import InvalidReviewDateError

DateLike = Union[str, int, float, date, datetime]


def get_todays_date() -> datetime:
    """Today at 00:00 local time (naive)."""
    return datetime.combine(date.today(), time.min)


def parse_review_date(value: DateLike) -> datetime:
    """
    Interpret a serialized review date.

    Raises:
        InvalidReviewDateError: If the value is not a date in any accepted form.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, bool):
        raise InvalidReviewDateError(value)
    if isinstance(value, (int, float)):
        # Epoch milliseconds, the numeric form hosts serialize timestamps in
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            raise InvalidReviewDateError(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            raise InvalidReviewDateError(value)
    raise InvalidReviewDateError(value)


def _to_local(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


def normalize_to_day(value: DateLike) -> date:
    """Local calendar day of a review date."""
    moment = parse_review_date(value)
    try:
        return _to_local(moment).date()
    except (OverflowError, ValueError):
        raise InvalidReviewDateError(value)


def change_date(value: DateLike, days: int) -> datetime:
    """Local midnight of the day ``days`` away from ``value`` (negative goes back)."""
    day = normalize_to_day(value)
    return datetime.combine(day + timedelta(days=days), time.min)


def review_timestamp(value: DateLike) -> float:
    """
    Sort key for review dates: POSIX seconds (naive values are local time).

    Dates too far out for the platform clock sort before or after everything else.
    """
    moment = parse_review_date(value)
    try:
        return moment.timestamp()
    except (OverflowError, ValueError, OSError):
        return float("-inf") if moment.year < 1970 else float("inf")


def date_already_passed(value: DateLike, today: Optional[date] = None) -> bool:
    """
    Due predicate: True if ``value`` falls on or before today.

    Values that cannot be interpreted are never due; a warning is logged so
    the broken record can be traced back to whatever wrote it.
    """
    if today is None:
        today = date.today()
    elif isinstance(today, datetime):
        today = _to_local(today).date()
    try:
        day = normalize_to_day(value)
    except InvalidReviewDateError:
        logger.warning(f"Unparseable next_review_date {value!r}; treating prompt as not due.")
        return False
    return day <= today


def to_iso(value: DateLike) -> str:
    """Serialize a review date the way prompts carry it."""
    return parse_review_date(value).isoformat()
