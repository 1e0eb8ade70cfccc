"""
In-memory persistence adapter implementing the CareDataSource protocol.

Used by tests and the console report runner. It also hosts the completion
workflow that the engine leaves to the persistence layer: resolving an
occurrence appends a history record and advances the schedule's due date.

Invariants kept here:
- an occurrence (schedule, scheduled date) is resolved at most once
- history records are never deleted
- resolving an occurrence always moves next_due_date past it
"""

import uuid
from datetime import UTC, date, datetime

import structlog

from careplan.domain.errors import InvalidArgument
from careplan.domain.models import (
    CareItem,
    DateWindow,
    DueDateFilter,
    HistoryRecord,
    HistoryStatus,
    PatientRef,
    PatientSchedule,
    ScheduleFilter,
)
from careplan.services.recurrence import advance_after_completion, next_date
from careplan.services.sources import Result

logger = structlog.get_logger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryCareRepository:
    """Dict-backed store of patients, care items, schedules and history."""

    def __init__(self) -> None:
        self.patients: dict[str, PatientRef] = {}
        self.items: dict[str, CareItem] = {}
        self.schedules: dict[str, PatientSchedule] = {}
        self.history: list[HistoryRecord] = []
        self.logger = logger.bind(component="in_memory_repository")

    # Registration

    def add_patient(
        self, name: str, patient_number: str, patient_id: str | None = None
    ) -> PatientRef:
        if any(p.patient_number == patient_number for p in self.patients.values()):
            raise InvalidArgument(f"Patient with number {patient_number} already exists")
        patient = PatientRef(id=patient_id or _new_id(), name=name, patient_number=patient_number)
        self.patients[patient.id] = patient
        return patient

    def add_item(self, item: CareItem) -> CareItem:
        self.items[item.id] = item
        return item

    def add_schedule(
        self,
        patient_id: str,
        item_id: str,
        first_date: date,
        next_due_date: date | None = None,
        schedule_id: str | None = None,
    ) -> PatientSchedule:
        """Bind a patient to a care item, first due one period after `first_date` by default."""
        if patient_id not in self.patients:
            raise InvalidArgument(f"Unknown patient {patient_id}")
        if item_id not in self.items:
            raise InvalidArgument(f"Invalid item_id {item_id}")

        item = self.items[item_id]
        schedule = PatientSchedule(
            id=schedule_id or _new_id(),
            patient=self.patients[patient_id],
            item=item.ref(),
            first_date=first_date,
            next_due_date=next_due_date or next_date(first_date, item.period),
        )
        self.schedules[schedule.id] = schedule
        self.logger.info(
            "schedule_added",
            schedule_id=schedule.id,
            item=item.name,
            next_due_date=schedule.next_due_date.isoformat(),
        )
        return schedule

    def deactivate(self, schedule_id: str) -> PatientSchedule:
        schedule = self._schedule(schedule_id).model_copy(update={"is_active": False})
        self.schedules[schedule_id] = schedule
        return schedule

    # Completion workflow

    def materialize_pending(self, schedule_id: str) -> HistoryRecord:
        """Create the pending record for the schedule's current occurrence, if missing."""
        schedule = self._schedule(schedule_id)
        existing = self._occurrence(schedule_id, schedule.next_due_date)
        if existing is not None:
            return existing

        record = HistoryRecord(
            id=_new_id(),
            schedule_id=schedule_id,
            scheduled_date=schedule.next_due_date,
            patient=schedule.patient,
            item=schedule.item,
        )
        self.history.append(record)
        return record

    def record_completion(
        self,
        schedule_id: str,
        completed_at: datetime | None = None,
        actual_completion_date: date | None = None,
        notes: str | None = None,
    ) -> HistoryRecord:
        """Mark the current occurrence completed and advance the schedule."""
        completed_at = completed_at or datetime.now(UTC)
        actual = actual_completion_date or completed_at.date()

        record = self._resolve(
            schedule_id,
            status=HistoryStatus.COMPLETED,
            completed_at=completed_at,
            actual_completion_date=actual,
            notes=notes,
        )
        self._advance(schedule_id, actual)
        return record

    def record_skip(self, schedule_id: str, notes: str | None = None) -> HistoryRecord:
        """Mark the current occurrence skipped; the next one is counted from its due date."""
        schedule = self._schedule(schedule_id)
        record = self._resolve(
            schedule_id,
            status=HistoryStatus.SKIPPED,
            completed_at=None,
            actual_completion_date=None,
            notes=notes,
        )
        self._advance(schedule_id, schedule.next_due_date)
        return record

    def _resolve(
        self,
        schedule_id: str,
        status: HistoryStatus,
        completed_at: datetime | None,
        actual_completion_date: date | None,
        notes: str | None,
    ) -> HistoryRecord:
        schedule = self._schedule(schedule_id)
        if not schedule.is_active:
            raise InvalidArgument(f"Schedule {schedule_id} is not active")

        update = {
            "status": status,
            "completed_at": completed_at,
            "actual_completion_date": actual_completion_date,
            "notes": notes,
        }
        existing = self._occurrence(schedule_id, schedule.next_due_date)
        if existing is not None and existing.status != HistoryStatus.PENDING:
            raise InvalidArgument(
                f"Occurrence {schedule.next_due_date} of schedule {schedule_id} is already "
                f"{existing.status.value}"
            )

        if existing is None:
            record = HistoryRecord(
                id=_new_id(),
                schedule_id=schedule_id,
                scheduled_date=schedule.next_due_date,
                patient=schedule.patient,
                item=schedule.item,
                **update,
            )
            self.history.append(record)
        else:
            record = existing.model_copy(update=update)
            self.history[self.history.index(existing)] = record

        self.logger.info(
            "occurrence_resolved",
            schedule_id=schedule_id,
            scheduled_date=record.scheduled_date.isoformat(),
            status=status.value,
        )
        return record

    def _advance(self, schedule_id: str, resolved_on: date) -> None:
        schedule = self._schedule(schedule_id)
        item = self.items.get(schedule.item.id) if schedule.item.kind == "item" else None
        if item is None:
            self.logger.warning("schedule_not_advanced_unknown_item", schedule_id=schedule_id)
            return

        due = advance_after_completion(schedule, item.period, resolved_on)
        self.schedules[schedule_id] = schedule.model_copy(
            update={"next_due_date": due, "is_notified": False}
        )

    def _schedule(self, schedule_id: str) -> PatientSchedule:
        try:
            return self.schedules[schedule_id]
        except KeyError:
            raise InvalidArgument(f"Unknown schedule {schedule_id}") from None

    def _occurrence(self, schedule_id: str, scheduled_date: date) -> HistoryRecord | None:
        return next(
            (
                record
                for record in self.history
                if record.schedule_id == schedule_id and record.scheduled_date == scheduled_date
            ),
            None,
        )

    # CareDataSource

    async def fetch_history(
        self, schedule_filter: ScheduleFilter | None, window: DateWindow | None
    ) -> Result[list[HistoryRecord], Exception]:
        records = [
            record
            for record in self.history
            if (window is None or window.contains(record.scheduled_date))
            and (schedule_filter is None or schedule_filter.matches(record))
        ]
        return Result.ok(records)

    async def fetch_schedules(
        self, active_only: bool, due: DueDateFilter | None
    ) -> Result[list[PatientSchedule], Exception]:
        schedules = [
            schedule
            for schedule in self.schedules.values()
            if (not active_only or schedule.is_active)
            and (due is None or due.matches(schedule.next_due_date))
        ]
        return Result.ok(schedules)

    async def count_patients(self) -> Result[int, Exception]:
        return Result.ok(len(self.patients))

    async def count_active_schedules(self, due: DueDateFilter | None) -> Result[int, Exception]:
        schedules = (await self.fetch_schedules(True, due)).unwrap()
        return Result.ok(len(schedules))
