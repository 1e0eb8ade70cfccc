"""Test domain model validation and invariants."""

from datetime import date

import pytest

from careplan.domain.models import (
    CareCategory,
    CareItem,
    DateWindow,
    DueDateFilter,
    HistoryRecord,
    HistoryStatus,
    ItemRef,
    PatientSchedule,
    PeriodUnit,
    RecurrencePeriod,
    ScheduleFilter,
    UnknownItem,
    UnknownPatient,
)


class TestRecurrencePeriod:
    @pytest.mark.parametrize(
        "value,unit,text",
        [
            (1, PeriodUnit.WEEKS, "1 week"),
            (3, PeriodUnit.MONTHS, "3 months"),
            (2, "weeks", "2 weeks"),
        ],
    )
    def test_str(self, value: int, unit: PeriodUnit, text: str) -> None:
        assert str(RecurrencePeriod(value=value, unit=unit)) == text

    @pytest.mark.parametrize(
        "value,unit", [(0, "weeks"), (521, "weeks"), (121, "months"), (1, "days")]
    )
    def test_rejects_out_of_range_periods(self, value: int, unit: str) -> None:
        with pytest.raises(ValueError):
            RecurrencePeriod(value=value, unit=unit)  # type: ignore[arg-type]

    def test_upper_bounds_are_inclusive(self) -> None:
        assert RecurrencePeriod(value=520, unit=PeriodUnit.WEEKS).value == 520
        assert RecurrencePeriod(value=120, unit=PeriodUnit.MONTHS).value == 120


class TestPatientSchedule:
    def test_due_date_cannot_precede_first_date(self) -> None:
        with pytest.raises(ValueError, match="next_due_date"):
            PatientSchedule(id="s", first_date=date(2025, 3, 1), next_due_date=date(2025, 2, 1))

    def test_missing_relations_are_explicitly_unknown(self) -> None:
        schedule = PatientSchedule(
            id="s", first_date=date(2025, 3, 1), next_due_date=date(2025, 3, 1)
        )

        assert isinstance(schedule.patient, UnknownPatient)
        assert isinstance(schedule.item, UnknownItem)
        assert schedule.item.category == CareCategory.UNKNOWN

    def test_relations_parse_from_tagged_dicts(self) -> None:
        schedule = PatientSchedule.model_validate(
            {
                "id": "s",
                "patient": {"kind": "unknown"},
                "item": {"kind": "item", "id": "i", "name": "B12", "category": "injection"},
                "first_date": "2025-03-01",
                "next_due_date": "2025-03-15",
            }
        )

        assert isinstance(schedule.patient, UnknownPatient)
        assert schedule.item == ItemRef(id="i", name="B12", category=CareCategory.INJECTION)
        assert schedule.next_due_date == date(2025, 3, 15)

    def test_snapshots_are_immutable(self) -> None:
        schedule = PatientSchedule(
            id="s", first_date=date(2025, 3, 1), next_due_date=date(2025, 3, 1)
        )

        with pytest.raises(ValueError, match="frozen"):
            schedule.next_due_date = date(2025, 4, 1)  # type: ignore[misc]


class TestHistoryRecord:
    def test_category_follows_item(self) -> None:
        record = HistoryRecord(
            id="r",
            schedule_id="s",
            scheduled_date=date(2025, 3, 1),
            item=ItemRef(id="i", name="CBC", category=CareCategory.TEST),
        )

        assert record.category == CareCategory.TEST
        assert record.status == HistoryStatus.PENDING
        assert not record.is_completed


class TestFilters:
    def test_window_bounds_are_inclusive(self) -> None:
        window = DateWindow(start=date(2025, 3, 1), end=date(2025, 3, 31))

        assert window.contains(date(2025, 3, 1))
        assert window.contains(date(2025, 3, 31))
        assert not window.contains(date(2025, 4, 1))

    def test_window_rejects_reversed_bounds(self) -> None:
        with pytest.raises(ValueError, match="after end"):
            DateWindow(start=date(2025, 3, 2), end=date(2025, 3, 1))

    def test_trailing_window(self) -> None:
        window = DateWindow.trailing(date(2025, 3, 12), 30)
        assert (window.start, window.end) == (date(2025, 2, 10), date(2025, 3, 12))

    def test_due_date_filter(self) -> None:
        due = DueDateFilter(on_or_after=date(2025, 3, 1), before=date(2025, 3, 10))

        assert due.matches(date(2025, 3, 1))
        assert due.matches(date(2025, 3, 9))
        assert not due.matches(date(2025, 3, 10))
        assert DueDateFilter().matches(date(1999, 1, 1))

    def test_schedule_filter(self) -> None:
        record = HistoryRecord(
            id="r", schedule_id="s", scheduled_date=date(2025, 3, 1), status=HistoryStatus.SKIPPED
        )

        assert ScheduleFilter().matches(record)
        assert ScheduleFilter(schedule_ids=frozenset({"s"})).matches(record)
        assert not ScheduleFilter(statuses=frozenset({HistoryStatus.COMPLETED})).matches(record)


def test_care_item_ref() -> None:
    item = CareItem(
        id="i",
        name="HbA1c",
        category=CareCategory.TEST,
        period=RecurrencePeriod(value=3, unit=PeriodUnit.MONTHS),
    )

    assert item.ref() == ItemRef(id="i", name="HbA1c", category=CareCategory.TEST)
