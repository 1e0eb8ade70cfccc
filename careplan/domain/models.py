"""
Domain models for recurring care schedules and their completion history.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation and are frozen: the engine only ever sees
read-only snapshots handed to it by the persistence layer.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

MAX_WEEKS = 520
MAX_MONTHS = 120


class CareCategory(str, Enum):
    """Kinds of care item. UNKNOWN marks a record whose item relation is missing."""

    TEST = "test"
    INJECTION = "injection"
    UNKNOWN = "unknown"

    @classmethod
    def known(cls) -> list["CareCategory"]:
        """Categories that always appear in reports, in display order."""
        return [cls.TEST, cls.INJECTION]


class PeriodUnit(str, Enum):
    WEEKS = "weeks"
    MONTHS = "months"


class RecurrencePeriod(BaseModel):
    """Interval between two occurrences of a care item."""

    model_config = ConfigDict(frozen=True)

    value: int = Field(gt=0, strict=True, description="Number of units between occurrences")
    unit: PeriodUnit

    @model_validator(mode="after")
    def value_within_bounds(self) -> "RecurrencePeriod":
        limit = MAX_WEEKS if self.unit == PeriodUnit.WEEKS else MAX_MONTHS
        if self.value > limit:
            raise ValueError(f"period value must be at most {limit} {self.unit.value}")
        return self

    def __str__(self) -> str:
        unit = self.unit.value[:-1] if self.value == 1 else self.unit.value
        return f"{self.value} {unit}"


class PatientRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["patient"] = "patient"
    id: str
    name: str
    patient_number: str


class UnknownPatient(BaseModel):
    """Stands in for a patient relation the data source could not resolve."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"


class ItemRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["item"] = "item"
    id: str
    name: str
    category: CareCategory


class UnknownItem(BaseModel):
    """Stands in for a care item relation the data source could not resolve."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"

    @property
    def category(self) -> CareCategory:
        return CareCategory.UNKNOWN


PatientInfo = Annotated[PatientRef | UnknownPatient, Field(discriminator="kind")]
ItemInfo = Annotated[ItemRef | UnknownItem, Field(discriminator="kind")]


class CareItem(BaseModel):
    """A recurring medical action, e.g. a specific lab test or injection."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = Field(min_length=1)
    category: CareCategory
    period: RecurrencePeriod
    description: str | None = None

    def ref(self) -> ItemRef:
        return ItemRef(id=self.id, name=self.name, category=self.category)


class PatientSchedule(BaseModel):
    """Binding of one patient to one care item, tracking when it is next due."""

    model_config = ConfigDict(frozen=True)

    id: str
    patient: PatientInfo = Field(default_factory=UnknownPatient)
    item: ItemInfo = Field(default_factory=UnknownItem)
    first_date: date
    next_due_date: date
    is_active: bool = True
    is_notified: bool = Field(default=False, description="Owned by the notification service")

    @model_validator(mode="after")
    def due_not_before_first(self) -> "PatientSchedule":
        if self.next_due_date < self.first_date:
            raise ValueError("next_due_date must not be earlier than first_date")
        return self


class HistoryStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class HistoryRecord(BaseModel):
    """One occurrence of a schedule, pending or resolved."""

    model_config = ConfigDict(frozen=True)

    id: str
    schedule_id: str
    scheduled_date: date
    status: HistoryStatus = HistoryStatus.PENDING
    completed_at: datetime | None = None
    actual_completion_date: date | None = None
    notes: str | None = None

    # Read-only projections of the schedule's relations
    patient: PatientInfo = Field(default_factory=UnknownPatient)
    item: ItemInfo = Field(default_factory=UnknownItem)

    @property
    def category(self) -> CareCategory:
        return self.item.category

    @property
    def is_completed(self) -> bool:
        return self.status == HistoryStatus.COMPLETED


class DateWindow(BaseModel):
    """Inclusive calendar-date range."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def start_not_after_end(self) -> "DateWindow":
        if self.start > self.end:
            raise ValueError(f"window start {self.start} is after end {self.end}")
        return self

    @classmethod
    def single(cls, day: date) -> "DateWindow":
        return cls(start=day, end=day)

    @classmethod
    def trailing(cls, end: date, days: int) -> "DateWindow":
        """Window ending at `end` and reaching `days` days into the past."""
        return cls(start=end - timedelta(days=days), end=end)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class ScheduleFilter(BaseModel):
    """Restricts a history fetch to some schedules and/or statuses."""

    model_config = ConfigDict(frozen=True)

    schedule_ids: frozenset[str] | None = None
    statuses: frozenset[HistoryStatus] | None = None

    def matches(self, record: HistoryRecord) -> bool:
        if self.schedule_ids is not None and record.schedule_id not in self.schedule_ids:
            return False
        if self.statuses is not None and record.status not in self.statuses:
            return False
        return True


class DueDateFilter(BaseModel):
    """Restricts a schedule fetch by next due date. Unset bounds are ignored."""

    model_config = ConfigDict(frozen=True)

    on: date | None = None
    before: date | None = None
    on_or_after: date | None = None
    on_or_before: date | None = None

    def matches(self, day: date) -> bool:
        if self.on is not None and day != self.on:
            return False
        if self.before is not None and day >= self.before:
            return False
        if self.on_or_after is not None and day < self.on_or_after:
            return False
        if self.on_or_before is not None and day > self.on_or_before:
            return False
        return True


# Report models, serialized with camelCase keys for API consumers


class ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class UrgencyStatus(str, Enum):
    OVERDUE = "overdue"
    TODAY = "today"
    UPCOMING = "upcoming"
    FUTURE = "future"


class UrgencyTier(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class UrgencyClassification(ReportModel):
    status: UrgencyStatus
    tier: UrgencyTier
    days_until_due: int


class UrgencySummary(ReportModel):
    """Counts of schedules per urgency status, tier and category."""

    total: int = Field(ge=0)
    by_status: dict[UrgencyStatus, int]
    by_tier: dict[UrgencyTier, int]
    by_category: dict[CareCategory, int]


class CompletionRate(ReportModel):
    rate_percent: float = Field(ge=0.0, le=100.0)
    completed_count: int = Field(ge=0)
    total_count: int = Field(ge=0)

    @classmethod
    def empty(cls) -> "CompletionRate":
        return cls(rate_percent=0.0, completed_count=0, total_count=0)


class WeeklyCompletionRate(ReportModel):
    week_start: date
    week_end: date
    week_label: str = Field(description='e.g. "Jan 1-7"')
    rate_percent: float = Field(ge=0.0, le=100.0)
    completed_count: int = Field(ge=0)
    total_count: int = Field(ge=0)


class WeeklySeries(ReportModel):
    entries: list[WeeklyCompletionRate]
    failed_weeks: list[date] = Field(
        default_factory=list, description="Start dates of weeks whose fetch failed"
    )


class CategoryShare(ReportModel):
    category: CareCategory
    count: int = Field(ge=0)
    percentage: float = Field(ge=0.0, le=100.0)


class CategoryDistribution(ReportModel):
    window: DateWindow
    entries: list[CategoryShare]
    degraded: bool = Field(default=False, description="True when the fetch failed")


class TrendsReport(ReportModel):
    weekly: WeeklySeries
    distribution: CategoryDistribution


class CompletionRates(ReportModel):
    today: float
    this_week: float
    this_month: float


class DashboardStats(ReportModel):
    total_patients: int = Field(ge=0)
    today_scheduled: int = Field(ge=0)
    completion_rates: CompletionRates
    overdue_items: int = Field(ge=0)


class UpcomingSchedule(ReportModel):
    schedule_id: str
    patient: PatientInfo
    item: ItemInfo
    due_date: date
    urgency: UrgencyClassification


class RecentActivity(ReportModel):
    record_id: str
    patient: PatientInfo
    item: ItemInfo
    scheduled_date: date
    completed_at: datetime | None
    actual_completion_date: date | None
    status: HistoryStatus
    notes: str | None = None


class DashboardRecent(ReportModel):
    recent_activity: list[RecentActivity]
    upcoming_schedules: list[UpcomingSchedule]
