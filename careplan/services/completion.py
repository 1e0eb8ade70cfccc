"""
Completion rates over date windows.

The pure calculation lives in `calculate_rate`; `CompletionRateCalculator`
wraps it with a history fetch from the data source.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from careplan.domain.errors import FetchFailure
from careplan.domain.models import CompletionRate, DateWindow, HistoryRecord
from careplan.services.sources import CareDataSource, Result, guarded_fetch, logger

_ONE_DECIMAL = Decimal("0.1")


def round1(value: Decimal | float | int) -> float:
    """Round to one decimal place, halves away from zero (12.25 -> 12.3)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return float(value.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> float:
    """`part` as a share of `whole`, in percent with one decimal. 0 when `whole` is 0."""
    if whole == 0:
        return 0.0
    return round1(Decimal(100 * part) / Decimal(whole))


def calculate_rate(records: Iterable[HistoryRecord], window: DateWindow) -> CompletionRate:
    """Share of records scheduled inside `window` that were completed."""
    total = 0
    completed = 0
    for record in records:
        if not window.contains(record.scheduled_date):
            continue
        total += 1
        if record.is_completed:
            completed += 1

    return CompletionRate(
        rate_percent=percentage(completed, total),
        completed_count=completed,
        total_count=total,
    )


class CompletionRateCalculator:
    """Fetches a window of history and computes its completion rate."""

    def __init__(self, source: CareDataSource) -> None:
        self.source = source
        self.logger = logger.bind(component="completion_rate_calculator")

    async def rate(self, window: DateWindow) -> Result[CompletionRate, FetchFailure]:
        fetched = await guarded_fetch(
            "fetch_history", lambda: self.source.fetch_history(None, window)
        )
        if fetched.is_err():
            failure = fetched.unwrap_err()
            self.logger.warning(
                "completion_history_fetch_failed",
                window_start=window.start.isoformat(),
                window_end=window.end.isoformat(),
                error=str(failure.cause),
            )
            return Result.err(failure)

        completion = calculate_rate(fetched.unwrap(), window)
        self.logger.debug(
            "completion_rate_calculated",
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            completed=completion.completed_count,
            total=completion.total_count,
            rate_percent=completion.rate_percent,
        )
        return Result.ok(completion)
