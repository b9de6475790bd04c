"""Shared date and time helpers."""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

from ..constants import SECONDS_PER_HOUR, VELOCITY_THRESHOLDS
from ..exceptions import InvalidDateRangeError, InvalidInputError

logger = logging.getLogger(__name__)

__all__ = [
    "parse_timestamp",
    "format_timestamp",
    "start_of_week",
    "week_bounds",
    "hours_between",
    "parse_date_range",
    "utc_now",
    "round_half_up",
]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up, as dashboards display them."""
    return int(math.floor(value + 0.5))


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | datetime | date) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. A trailing ``Z`` is accepted, as emitted
    by the code-host API.

    Raises:
        InvalidInputError: If the value is not a recognisable timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidInputError(f"Invalid timestamp: {value!r}") from exc

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime for storage so that string order matches time order."""
    return parse_timestamp(value).strftime("%Y-%m-%dT%H:%M:%S+00:00")


def start_of_week(moment: datetime | date) -> date:
    """Return the Monday of the week containing ``moment``."""
    day = moment.date() if isinstance(moment, datetime) else moment
    return day - timedelta(days=day.weekday())


def week_bounds(week_start: date) -> Tuple[datetime, datetime]:
    """Return the half-open ``[start, end)`` datetime window for a week."""
    start = datetime.combine(week_start, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=VELOCITY_THRESHOLDS['days_per_week'])


def hours_between(start: datetime, end: datetime) -> float:
    """Return the signed number of hours from ``start`` to ``end``."""
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def parse_date_range(
    date_from: Optional[str | date | datetime],
    date_to: Optional[str | date | datetime],
) -> Tuple[datetime, datetime]:
    """Parse a report date range into a half-open ``[start, end)`` window.

    A bare date for ``date_to`` is widened to the following midnight so that
    activity on the final day is included.

    Raises:
        InvalidDateRangeError: If either bound is missing or the range is inverted.
    """
    if date_from is None or date_to is None:
        raise InvalidDateRangeError("Both start and end dates are required")

    try:
        start = parse_timestamp(date_from)
        end = parse_timestamp(date_to)
    except InvalidInputError as exc:
        raise InvalidDateRangeError(str(exc)) from exc

    bare_date = isinstance(date_to, date) and not isinstance(date_to, datetime)
    if bare_date or (isinstance(date_to, str) and len(date_to.strip()) == 10):
        end = end + timedelta(days=1)

    if start >= end:
        raise InvalidDateRangeError(
            f"Start {start.isoformat()} must be before end {end.isoformat()}"
        )
    logger.debug(f"Resolved date range {start.isoformat()} .. {end.isoformat()}")
    return start, end
