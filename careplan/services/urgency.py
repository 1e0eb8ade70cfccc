"""
Urgency classification of due dates relative to a reference day.
"""

from collections import Counter
from collections.abc import Iterable
from datetime import date

from careplan.domain.models import (
    CareCategory,
    PatientSchedule,
    UrgencyClassification,
    UrgencyStatus,
    UrgencySummary,
    UrgencyTier,
)
from careplan.services.recurrence import as_date

UPCOMING_HORIZON_DAYS = 7


def days_until_due(due_date: date, today: date) -> int:
    """Whole days from `today` to `due_date`; negative when overdue."""
    return (as_date(due_date, "due_date") - as_date(today, "today")).days


def classify(due_date: date, today: date) -> UrgencyClassification:
    days = days_until_due(due_date, today)

    if days < 0:
        status, tier = UrgencyStatus.OVERDUE, UrgencyTier.CRITICAL
    elif days == 0:
        status, tier = UrgencyStatus.TODAY, UrgencyTier.HIGH
    elif days <= UPCOMING_HORIZON_DAYS:
        status, tier = UrgencyStatus.UPCOMING, UrgencyTier.MEDIUM
    else:
        status, tier = UrgencyStatus.FUTURE, UrgencyTier.LOW

    return UrgencyClassification(status=status, tier=tier, days_until_due=days)


def summarize(schedules: Iterable[PatientSchedule], today: date) -> UrgencySummary:
    """Count schedules per urgency status, tier and category. Every key is present."""
    statuses: Counter[UrgencyStatus] = Counter()
    tiers: Counter[UrgencyTier] = Counter()
    categories: Counter[CareCategory] = Counter()
    total = 0

    for schedule in schedules:
        urgency = classify(schedule.next_due_date, today)
        statuses[urgency.status] += 1
        tiers[urgency.tier] += 1
        categories[schedule.item.category] += 1
        total += 1

    by_category = {category: categories[category] for category in CareCategory.known()}
    if categories[CareCategory.UNKNOWN]:
        by_category[CareCategory.UNKNOWN] = categories[CareCategory.UNKNOWN]

    return UrgencySummary(
        total=total,
        by_status={status: statuses[status] for status in UrgencyStatus},
        by_tier={tier: tiers[tier] for tier in UrgencyTier},
        by_category=by_category,
    )
