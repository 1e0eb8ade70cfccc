"""
Recurrence arithmetic for care schedules.

Week periods are plain day offsets. Month periods use dateutil's relativedelta,
which clamps to the last valid day of the target month (Jan 31 + 1 month is
Feb 28 or 29, never Mar 3).
"""

from collections.abc import Mapping
from datetime import date, datetime, timedelta
from typing import Any

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from careplan.domain.errors import InvalidArgument
from careplan.domain.models import (
    MAX_MONTHS,
    MAX_WEEKS,
    PatientSchedule,
    PeriodUnit,
    RecurrencePeriod,
)

DEFAULT_SERIES_COUNT = 12

PeriodLike = RecurrencePeriod | Mapping[str, Any] | tuple[int, str | PeriodUnit]


def as_date(value: Any, name: str = "date") -> date:
    """Return `value` as a calendar date, truncating datetimes."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidArgument(f"{name} must be a date, got {type(value).__name__}")


def as_period(period: PeriodLike) -> RecurrencePeriod:
    """Coerce and validate a recurrence period."""
    if isinstance(period, RecurrencePeriod):
        # model_construct() skips validation, so check bounds again
        limit = MAX_WEEKS if period.unit == PeriodUnit.WEEKS else MAX_MONTHS
        if not isinstance(period.value, int) or not 1 <= period.value <= limit:
            raise InvalidArgument(f"period value must be between 1 and {limit}")
        return period

    try:
        if isinstance(period, tuple):
            value, unit = period
            return RecurrencePeriod(value=value, unit=unit)
        if isinstance(period, Mapping):
            return RecurrencePeriod.model_validate(period)
    except (ValidationError, ValueError) as e:
        raise InvalidArgument(f"invalid recurrence period {period!r}: {e}") from e

    raise InvalidArgument(f"invalid recurrence period {period!r}")


def next_date(base: date, period: PeriodLike) -> date:
    """Date of the occurrence one period after `base`."""
    base = as_date(base, "base")
    period = as_period(period)

    try:
        if period.unit == PeriodUnit.WEEKS:
            return base + timedelta(weeks=period.value)
        return base + relativedelta(months=period.value)
    except (OverflowError, ValueError) as e:
        raise InvalidArgument(f"{base} + {period} is outside the supported date range") from e


def project_series(
    first_date: date, period: PeriodLike, count: int = DEFAULT_SERIES_COUNT
) -> list[date]:
    """
    The next `count` occurrences after `first_date`.

    Each date is derived from the previous one, not from `first_date`, so month
    clamping carries forward (Jan 31, Feb 28, Mar 28, ...).
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise InvalidArgument(f"count must be a non-negative integer, got {count!r}")

    current = as_date(first_date, "first_date")
    period = as_period(period)

    series: list[date] = []
    for _ in range(count):
        current = next_date(current, period)
        series.append(current)
    return series


def advance_after_completion(
    schedule: PatientSchedule, period: PeriodLike, completed_on: date
) -> date:
    """
    New next due date once the schedule's current occurrence is resolved.

    The next occurrence is counted from the day the care was actually given.
    When that would not move past the resolved occurrence (early completion),
    it is counted from the resolved due date instead, so the result is always
    strictly after `schedule.next_due_date`.
    """
    completed_on = as_date(completed_on, "completed_on")
    candidate = next_date(completed_on, period)
    if candidate <= schedule.next_due_date:
        candidate = next_date(schedule.next_due_date, period)
    return candidate
