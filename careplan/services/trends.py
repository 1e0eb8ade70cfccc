"""
Trend reports: weekly completion series and category distribution.

Both reports degrade instead of failing. A week whose history cannot be
fetched is reported as an all-zero entry and listed in `failed_weeks`; a
failed distribution fetch yields zero entries for every known category with
`degraded` set. Every failure is logged.
"""

import asyncio
from collections import Counter
from datetime import date, timedelta
from fractions import Fraction

from careplan.config import ReportingConfig, WeekStart
from careplan.domain.errors import InvalidArgument
from careplan.domain.models import (
    CareCategory,
    CategoryDistribution,
    CategoryShare,
    CompletionRate,
    DateWindow,
    TrendsReport,
    WeeklyCompletionRate,
    WeeklySeries,
)
from careplan.services.completion import CompletionRateCalculator
from careplan.services.recurrence import as_date
from careplan.services.sources import CareDataSource, guarded_fetch, logger

_FIRST_WEEKDAY: dict[str, int] = {"monday": 0, "sunday": 6}

# Fixed English abbreviations, independent of the process locale
_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def start_of_week(day: date, week_start: WeekStart = "monday") -> date:
    """First day of the reporting week containing `day`."""
    if week_start not in _FIRST_WEEKDAY:
        raise InvalidArgument(f"unknown week start {week_start!r}")
    offset = (day.weekday() - _FIRST_WEEKDAY[week_start]) % 7
    return day - timedelta(days=offset)


def format_week_label(start: date, end: date) -> str:
    """'Jan 1-7' within a month, 'Jan 29-Feb 4' across months."""
    start_month = _MONTH_ABBR[start.month - 1]
    end_month = _MONTH_ABBR[end.month - 1]
    if start.month == end.month:
        return f"{start_month} {start.day}-{end.day}"
    return f"{start_month} {start.day}-{end_month} {end.day}"


def apportion_percentages(counts: list[int]) -> list[float]:
    """
    One-decimal percentages of `counts` that add up to exactly 100.0.

    Largest-remainder apportionment in tenths of a percent; remainders that tie
    go to the earlier entry. All zeros when the counts sum to zero.
    """
    total = sum(counts)
    if total == 0:
        return [0.0] * len(counts)

    exact = [Fraction(1000 * count, total) for count in counts]
    tenths = [int(share) for share in exact]
    leftover = 1000 - sum(tenths)

    by_remainder = sorted(range(len(counts)), key=lambda i: exact[i] - tenths[i], reverse=True)
    for i in by_remainder[:leftover]:
        tenths[i] += 1

    return [t / 10 for t in tenths]


class TrendAggregator:
    """Builds the weekly completion series and the category distribution."""

    def __init__(
        self,
        source: CareDataSource,
        config: ReportingConfig | None = None,
        calculator: CompletionRateCalculator | None = None,
    ) -> None:
        self.source = source
        self.config = config or ReportingConfig()
        self.calculator = calculator or CompletionRateCalculator(source)
        self.logger = logger.bind(component="trend_aggregator")

    def week_windows(self, today: date, weeks: int) -> list[DateWindow]:
        """Full calendar weeks, oldest first, the last one containing `today`."""
        current = start_of_week(today, self.config.week_start)
        windows = []
        for weeks_back in range(weeks - 1, -1, -1):
            start = current - timedelta(weeks=weeks_back)
            windows.append(DateWindow(start=start, end=start + timedelta(days=6)))
        return windows

    async def weekly_series(self, today: date, weeks: int | None = None) -> WeeklySeries:
        today = as_date(today, "today")
        weeks = self.config.weekly_series_weeks if weeks is None else weeks
        if isinstance(weeks, bool) or not isinstance(weeks, int) or weeks <= 0:
            raise InvalidArgument(f"weeks must be a positive integer, got {weeks!r}")

        windows = self.week_windows(today, weeks)

        # Each rate() call returns a Result, so one failing week cannot cancel the rest
        async with asyncio.TaskGroup() as task_group:
            tasks = [task_group.create_task(self.calculator.rate(window)) for window in windows]

        entries: list[WeeklyCompletionRate] = []
        failed_weeks: list[date] = []
        for window, task in zip(windows, tasks, strict=True):
            result = task.result()
            if result.is_ok():
                completion = result.unwrap()
            else:
                self.logger.warning(
                    "weekly_completion_fetch_failed",
                    week_start=window.start.isoformat(),
                    error=str(result.unwrap_err()),
                )
                failed_weeks.append(window.start)
                completion = CompletionRate.empty()

            entries.append(
                WeeklyCompletionRate(
                    week_start=window.start,
                    week_end=window.end,
                    week_label=format_week_label(window.start, window.end),
                    rate_percent=completion.rate_percent,
                    completed_count=completion.completed_count,
                    total_count=completion.total_count,
                )
            )

        self.logger.info(
            "weekly_series_built",
            weeks=weeks,
            failed_weeks=len(failed_weeks),
            week_start=self.config.week_start,
        )
        return WeeklySeries(entries=entries, failed_weeks=failed_weeks)

    async def category_distribution(
        self, today: date, window_days: int | None = None
    ) -> CategoryDistribution:
        today = as_date(today, "today")
        window_days = self.config.category_window_days if window_days is None else window_days
        if isinstance(window_days, bool) or not isinstance(window_days, int) or window_days < 0:
            raise InvalidArgument(
                f"window_days must be a non-negative integer, got {window_days!r}"
            )

        window = DateWindow.trailing(today, window_days)
        known = CareCategory.known()

        fetched = await guarded_fetch(
            "fetch_history", lambda: self.source.fetch_history(None, window)
        )
        if fetched.is_err():
            self.logger.error(
                "category_distribution_fetch_failed",
                window_start=window.start.isoformat(),
                window_end=window.end.isoformat(),
                error=str(fetched.unwrap_err()),
            )
            return CategoryDistribution(
                window=window,
                entries=[CategoryShare(category=c, count=0, percentage=0.0) for c in known],
                degraded=True,
            )

        tally = Counter(
            record.category for record in fetched.unwrap() if window.contains(record.scheduled_date)
        )
        if tally[CareCategory.UNKNOWN]:
            self.logger.info(
                "uncategorized_records_excluded", count=tally[CareCategory.UNKNOWN]
            )

        counts = [tally[category] for category in known]
        shares = apportion_percentages(counts)
        return CategoryDistribution(
            window=window,
            entries=[
                CategoryShare(category=category, count=count, percentage=share)
                for category, count, share in zip(known, counts, shares, strict=True)
            ],
        )

    async def trends(self, today: date) -> TrendsReport:
        """Both trend reports, fetched concurrently."""
        async with asyncio.TaskGroup() as task_group:
            weekly = task_group.create_task(self.weekly_series(today))
            distribution = task_group.create_task(self.category_distribution(today))

        return TrendsReport(weekly=weekly.result(), distribution=distribution.result())
