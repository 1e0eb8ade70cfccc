"""
Dashboard assembly: headline counts, completion rates and schedule lists.

Unlike the trend reports, assembly does not degrade: if any read fails the
whole call raises AggregationFailed wrapping the first failure, and the caller
decides whether to retry.

A schedule is overdue when its next due date has passed and no completed
history record exists for that date. Overdue is always derived from history,
never read from a stored flag.
"""

import asyncio
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

from careplan.config import ReportingConfig
from careplan.domain.errors import AggregationFailed, FetchFailure, InvalidArgument
from careplan.domain.models import (
    CompletionRates,
    DashboardRecent,
    DashboardStats,
    DateWindow,
    DueDateFilter,
    HistoryRecord,
    HistoryStatus,
    PatientSchedule,
    RecentActivity,
    ScheduleFilter,
    UpcomingSchedule,
)
from careplan.services.completion import CompletionRateCalculator
from careplan.services.recurrence import as_date
from careplan.services.sources import CareDataSource, Result, guarded_fetch, logger
from careplan.services.trends import start_of_week
from careplan.services.urgency import classify

_COMPLETED_ONLY = frozenset({HistoryStatus.COMPLETED})


class DashboardStatsAssembler:
    """Composes counts, completion rates and overdue detection into dashboard reports."""

    def __init__(
        self,
        source: CareDataSource,
        config: ReportingConfig | None = None,
        calculator: CompletionRateCalculator | None = None,
    ) -> None:
        self.source = source
        self.config = config or ReportingConfig()
        self.calculator = calculator or CompletionRateCalculator(source)
        self.logger = logger.bind(component="dashboard_stats_assembler")

    def _unwrap(self, report: str, result: Result[Any, FetchFailure]) -> Any:
        if result.is_err():
            failure = result.unwrap_err()
            self.logger.error("dashboard_aggregation_failed", report=report, error=str(failure))
            raise AggregationFailed(report, failure) from failure
        return result.unwrap()

    async def assemble(self, today: date) -> DashboardStats:
        today = as_date(today, "today")
        windows = {
            "today": DateWindow.single(today),
            "this_week": DateWindow(start=start_of_week(today, self.config.week_start), end=today),
            "this_month": DateWindow(start=today.replace(day=1), end=today),
        }

        async with asyncio.TaskGroup() as task_group:
            patients = task_group.create_task(
                guarded_fetch("count_patients", self.source.count_patients)
            )
            scheduled = task_group.create_task(
                guarded_fetch(
                    "count_active_schedules",
                    lambda: self.source.count_active_schedules(DueDateFilter(on=today)),
                )
            )
            rates = {
                name: task_group.create_task(self.calculator.rate(window))
                for name, window in windows.items()
            }
            overdue = task_group.create_task(self._overdue(today))

        total_patients = self._unwrap("dashboard stats", patients.result())
        today_scheduled = self._unwrap("dashboard stats", scheduled.result())
        completion = {
            name: self._unwrap("dashboard stats", task.result()) for name, task in rates.items()
        }
        overdue_items = self._unwrap("dashboard stats", overdue.result())

        stats = DashboardStats(
            total_patients=total_patients,
            today_scheduled=today_scheduled,
            completion_rates=CompletionRates(
                today=completion["today"].rate_percent,
                this_week=completion["this_week"].rate_percent,
                this_month=completion["this_month"].rate_percent,
            ),
            overdue_items=len(overdue_items),
        )
        self.logger.info(
            "dashboard_stats_assembled",
            today=today.isoformat(),
            total_patients=stats.total_patients,
            today_scheduled=stats.today_scheduled,
            overdue_items=stats.overdue_items,
        )
        return stats

    async def overdue_schedules(self, today: date) -> list[PatientSchedule]:
        """Active schedules past due whose due occurrence has not been completed."""
        today = as_date(today, "today")
        return self._unwrap("overdue schedules", await self._overdue(today))

    async def upcoming_schedules(
        self, today: date, days_ahead: int | None = None
    ) -> list[UpcomingSchedule]:
        """Open schedules due between today and `days_ahead` days from now, soonest first."""
        today = as_date(today, "today")
        days_ahead = self.config.upcoming_window_days if days_ahead is None else days_ahead
        due = DueDateFilter(on_or_after=today, on_or_before=today + timedelta(days=days_ahead))
        schedules = self._unwrap("upcoming schedules", await self._open_schedules(due))
        return [_as_upcoming(schedule, today) for schedule in schedules]

    async def today_schedules(self, today: date) -> list[UpcomingSchedule]:
        """Open schedules due on `today`."""
        today = as_date(today, "today")
        schedules = self._unwrap(
            "today schedules", await self._open_schedules(DueDateFilter(on=today))
        )
        return [_as_upcoming(schedule, today) for schedule in schedules]

    async def schedule_history(self, schedule_id: str) -> list[HistoryRecord]:
        """Every recorded occurrence of one schedule, latest scheduled date first."""
        if not isinstance(schedule_id, str) or not schedule_id:
            raise InvalidArgument("schedule_id is required")

        schedule_filter = ScheduleFilter(schedule_ids=frozenset({schedule_id}))
        history = await guarded_fetch(
            "fetch_history", lambda: self.source.fetch_history(schedule_filter, None)
        )
        records = self._unwrap("schedule history", history)
        return sorted(records, key=lambda record: record.scheduled_date, reverse=True)

    async def recent(self, today: date) -> DashboardRecent:
        """Latest completed occurrences and the next open schedules."""
        today = as_date(today, "today")
        limit = self.config.recent_activity_limit

        async with asyncio.TaskGroup() as task_group:
            history = task_group.create_task(
                guarded_fetch(
                    "fetch_history",
                    lambda: self.source.fetch_history(
                        ScheduleFilter(statuses=_COMPLETED_ONLY), None
                    ),
                )
            )
            upcoming = task_group.create_task(
                self._open_schedules(DueDateFilter(on_or_after=today))
            )

        completed = self._unwrap("recent activity", history.result())
        schedules = self._unwrap("recent activity", upcoming.result())

        latest = _latest_completed(completed, limit)
        return DashboardRecent(
            recent_activity=[_as_activity(record) for record in latest],
            upcoming_schedules=[_as_upcoming(schedule, today) for schedule in schedules[:limit]],
        )

    async def _overdue(self, today: date) -> Result[list[PatientSchedule], FetchFailure]:
        return await self._open_schedules(DueDateFilter(before=today))

    async def _open_schedules(
        self, due: DueDateFilter
    ) -> Result[list[PatientSchedule], FetchFailure]:
        """Active schedules matching `due` whose current occurrence is not completed."""
        fetched = await guarded_fetch(
            "fetch_schedules", lambda: self.source.fetch_schedules(True, due)
        )
        if fetched.is_err():
            return fetched

        schedules = [
            schedule
            for schedule in fetched.unwrap()
            if schedule.is_active and due.matches(schedule.next_due_date)
        ]
        if not schedules:
            return Result.ok([])

        history_filter = ScheduleFilter(
            schedule_ids=frozenset(schedule.id for schedule in schedules),
            statuses=_COMPLETED_ONLY,
        )
        history = await guarded_fetch(
            "fetch_history", lambda: self.source.fetch_history(history_filter, None)
        )
        if history.is_err():
            return Result.err(history.unwrap_err())

        completed = {
            (record.schedule_id, record.scheduled_date)
            for record in history.unwrap()
            if record.is_completed
        }
        open_schedules = [
            schedule
            for schedule in schedules
            if (schedule.id, schedule.next_due_date) not in completed
        ]
        open_schedules.sort(key=lambda schedule: (schedule.next_due_date, schedule.id))
        return Result.ok(open_schedules)


def _latest_completed(records: Iterable[HistoryRecord], limit: int) -> list[HistoryRecord]:
    completed = [record for record in records if record.is_completed]
    # Records without a completion timestamp sort last
    completed.sort(
        key=lambda r: r.completed_at.timestamp() if r.completed_at else float("-inf"),
        reverse=True,
    )
    return completed[:limit]


def _as_activity(record: HistoryRecord) -> RecentActivity:
    return RecentActivity(
        record_id=record.id,
        patient=record.patient,
        item=record.item,
        scheduled_date=record.scheduled_date,
        completed_at=record.completed_at,
        actual_completion_date=record.actual_completion_date,
        status=record.status,
        notes=record.notes,
    )


def _as_upcoming(schedule: PatientSchedule, today: date) -> UpcomingSchedule:
    return UpcomingSchedule(
        schedule_id=schedule.id,
        patient=schedule.patient,
        item=schedule.item,
        due_date=schedule.next_due_date,
        urgency=classify(schedule.next_due_date, today),
    )
