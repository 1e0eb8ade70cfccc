"""Shared fixtures and test doubles for engine tests."""

import itertools
from collections.abc import Callable, Iterable
from datetime import date, datetime

import pytest

from careplan.domain.models import (
    CareCategory,
    DateWindow,
    DueDateFilter,
    HistoryRecord,
    HistoryStatus,
    ItemRef,
    PatientRef,
    PatientSchedule,
    ScheduleFilter,
    UnknownItem,
)
from careplan.services.sources import Result

# Wednesday; weeks start Monday 2025-03-10 or Sunday 2025-03-09
TODAY = date(2025, 3, 12)

_ids = itertools.count(1)


class StubCareSource:
    """Test double that implements the CareDataSource protocol over fixed data."""

    def __init__(
        self,
        history: Iterable[HistoryRecord] = (),
        schedules: Iterable[PatientSchedule] = (),
        patients: int = 0,
        fail_on: Iterable[str] = (),
        fail_windows: Iterable[date] = (),
        raise_errors: bool = False,
    ) -> None:
        self.history = list(history)
        self.schedules = list(schedules)
        self.patients = patients
        self.fail_on = set(fail_on)
        self.fail_windows = set(fail_windows)
        self.raise_errors = raise_errors
        self.history_windows: list[DateWindow | None] = []

    def _fail(self, operation: str) -> Result:
        error = ConnectionError(f"{operation} unavailable")
        if self.raise_errors:
            raise error
        return Result.err(error)

    async def fetch_history(
        self, schedule_filter: ScheduleFilter | None, window: DateWindow | None
    ) -> Result[list[HistoryRecord], Exception]:
        self.history_windows.append(window)
        if "fetch_history" in self.fail_on:
            return self._fail("fetch_history")
        if window is not None and window.start in self.fail_windows:
            return self._fail("fetch_history")

        return Result.ok(
            [
                record
                for record in self.history
                if (window is None or window.contains(record.scheduled_date))
                and (schedule_filter is None or schedule_filter.matches(record))
            ]
        )

    async def fetch_schedules(
        self, active_only: bool, due: DueDateFilter | None
    ) -> Result[list[PatientSchedule], Exception]:
        if "fetch_schedules" in self.fail_on:
            return self._fail("fetch_schedules")
        return Result.ok(
            [
                schedule
                for schedule in self.schedules
                if (not active_only or schedule.is_active)
                and (due is None or due.matches(schedule.next_due_date))
            ]
        )

    async def count_patients(self) -> Result[int, Exception]:
        if "count_patients" in self.fail_on:
            return self._fail("count_patients")
        return Result.ok(self.patients)

    async def count_active_schedules(self, due: DueDateFilter | None) -> Result[int, Exception]:
        if "count_active_schedules" in self.fail_on:
            return self._fail("count_active_schedules")
        schedules = (await self.fetch_schedules(True, due)).unwrap()
        return Result.ok(len(schedules))


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def make_source() -> type[StubCareSource]:
    return StubCareSource


@pytest.fixture
def make_record() -> Callable[..., HistoryRecord]:
    """Build a history record; category None leaves the item relation unknown."""

    def _make(
        scheduled_date: date,
        status: HistoryStatus = HistoryStatus.COMPLETED,
        category: CareCategory | None = CareCategory.TEST,
        schedule_id: str = "schedule-1",
        completed_at: datetime | None = None,
    ) -> HistoryRecord:
        item = (
            ItemRef(id=f"item-{category.value}", name=f"{category.value} item", category=category)
            if category is not None
            else UnknownItem()
        )
        return HistoryRecord(
            id=f"record-{next(_ids)}",
            schedule_id=schedule_id,
            scheduled_date=scheduled_date,
            status=status,
            completed_at=completed_at,
            item=item,
        )

    return _make


@pytest.fixture
def make_schedule() -> Callable[..., PatientSchedule]:
    def _make(
        schedule_id: str,
        next_due_date: date,
        is_active: bool = True,
        category: CareCategory = CareCategory.TEST,
    ) -> PatientSchedule:
        return PatientSchedule(
            id=schedule_id,
            patient=PatientRef(
                id=f"patient-{schedule_id}", name="Test Patient", patient_number="P-1"
            ),
            item=ItemRef(id="item-1", name="Blood test", category=category),
            first_date=date(2024, 1, 1),
            next_due_date=next_due_date,
            is_active=is_active,
        )

    return _make
