"""Tests for urgency classification and summaries."""

from collections.abc import Callable
from datetime import date, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from careplan.domain.errors import InvalidArgument
from careplan.domain.models import (
    CareCategory,
    PatientSchedule,
    UrgencyStatus,
    UrgencyTier,
)
from careplan.services.urgency import classify, days_until_due, summarize

TODAY = date(2025, 3, 12)


class TestClassify:
    @pytest.mark.parametrize(
        "offset,status,tier",
        [
            (-5, UrgencyStatus.OVERDUE, UrgencyTier.CRITICAL),
            (-1, UrgencyStatus.OVERDUE, UrgencyTier.CRITICAL),
            (0, UrgencyStatus.TODAY, UrgencyTier.HIGH),
            (1, UrgencyStatus.UPCOMING, UrgencyTier.MEDIUM),
            (3, UrgencyStatus.UPCOMING, UrgencyTier.MEDIUM),
            (7, UrgencyStatus.UPCOMING, UrgencyTier.MEDIUM),
            (8, UrgencyStatus.FUTURE, UrgencyTier.LOW),
            (10, UrgencyStatus.FUTURE, UrgencyTier.LOW),
        ],
    )
    def test_tiers(self, offset: int, status: UrgencyStatus, tier: UrgencyTier) -> None:
        result = classify(TODAY + timedelta(days=offset), TODAY)

        assert result.status == status
        assert result.tier == tier
        assert result.days_until_due == offset

    def test_time_of_day_is_ignored(self) -> None:
        """A due date late in the evening is still due today, not tomorrow."""
        result = classify(datetime(2025, 3, 12, 23, 59), datetime(2025, 3, 12, 0, 1))
        assert result.status == UrgencyStatus.TODAY

        result = classify(datetime(2025, 3, 11, 23, 59), datetime(2025, 3, 12, 0, 1))
        assert result.status == UrgencyStatus.OVERDUE
        assert result.days_until_due == -1

    @given(offset=st.integers(min_value=-3000, max_value=3000))
    def test_every_offset_has_exactly_one_classification(self, offset: int) -> None:
        result = classify(TODAY + timedelta(days=offset), TODAY)

        expected = {
            UrgencyStatus.OVERDUE: offset < 0,
            UrgencyStatus.TODAY: offset == 0,
            UrgencyStatus.UPCOMING: 0 < offset <= 7,
            UrgencyStatus.FUTURE: offset > 7,
        }
        assert expected[result.status]
        assert sum(expected.values()) == 1

    def test_rejects_non_dates(self) -> None:
        with pytest.raises(InvalidArgument):
            classify("2025-03-12", TODAY)  # type: ignore[arg-type]

    def test_days_until_due(self) -> None:
        assert days_until_due(date(2025, 3, 1), TODAY) == -11
        assert days_until_due(date(2025, 4, 1), TODAY) == 20


class TestSummarize:
    def test_counts_every_status_tier_and_category(
        self, make_schedule: Callable[..., PatientSchedule]
    ) -> None:
        schedules = [
            make_schedule("a", TODAY - timedelta(days=2)),
            make_schedule("b", TODAY, category=CareCategory.INJECTION),
            make_schedule("c", TODAY + timedelta(days=3)),
            make_schedule("d", TODAY + timedelta(days=4), category=CareCategory.INJECTION),
        ]

        summary = summarize(schedules, TODAY)

        assert summary.total == 4
        assert summary.by_status == {
            UrgencyStatus.OVERDUE: 1,
            UrgencyStatus.TODAY: 1,
            UrgencyStatus.UPCOMING: 2,
            UrgencyStatus.FUTURE: 0,
        }
        assert summary.by_tier[UrgencyTier.LOW] == 0
        assert summary.by_tier[UrgencyTier.MEDIUM] == 2
        assert summary.by_category == {CareCategory.TEST: 2, CareCategory.INJECTION: 2}

    def test_empty_input_reports_zero_for_every_key(self) -> None:
        summary = summarize([], TODAY)

        assert summary.total == 0
        assert set(summary.by_tier) == set(UrgencyTier)
        assert all(count == 0 for count in summary.by_status.values())
        assert summary.by_category == {CareCategory.TEST: 0, CareCategory.INJECTION: 0}

    def test_unknown_items_are_reported_separately(self) -> None:
        schedule = PatientSchedule(id="x", first_date=TODAY, next_due_date=TODAY)

        summary = summarize([schedule], TODAY)

        assert summary.by_category[CareCategory.UNKNOWN] == 1
        assert sum(summary.by_tier.values()) == summary.total
