"""
Console walkthrough of the scheduling and analytics engine.

This script:
1. Loads and validates configuration
2. Seeds an in-memory repository with patients, care items and history
3. Prints dashboard stats, trend reports and upcoming schedules

Run with: uv run python run_dashboard.py
"""

import asyncio
from datetime import UTC, date, datetime, time, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.memory.repository import InMemoryCareRepository
from careplan.config import get_config, print_config_summary, validate_config
from careplan.domain.errors import AggregationFailed
from careplan.domain.models import CareCategory, CareItem, PeriodUnit, RecurrencePeriod
from careplan.services import (
    DashboardStatsAssembler,
    TrendAggregator,
    configure_logging,
    project_series,
    summarize,
)

console = Console()


def seed_repository(today: date) -> InMemoryCareRepository:
    """Two patients, three care items, a few weeks of resolved occurrences."""
    repository = InMemoryCareRepository()

    blood_test = repository.add_item(
        CareItem(
            id="item-cbc",
            name="Complete blood count",
            category=CareCategory.TEST,
            period=RecurrencePeriod(value=1, unit=PeriodUnit.WEEKS),
        )
    )
    lipid_panel = repository.add_item(
        CareItem(
            id="item-lipid",
            name="Lipid panel",
            category=CareCategory.TEST,
            period=RecurrencePeriod(value=3, unit=PeriodUnit.MONTHS),
        )
    )
    b12 = repository.add_item(
        CareItem(
            id="item-b12",
            name="Vitamin B12 injection",
            category=CareCategory.INJECTION,
            period=RecurrencePeriod(value=2, unit=PeriodUnit.WEEKS),
        )
    )

    kim = repository.add_patient("Kim Minji", "P-0001")
    lee = repository.add_patient("Lee Jun", "P-0002")

    weekly = repository.add_schedule(kim.id, blood_test.id, first_date=today - timedelta(weeks=5))
    repository.add_schedule(
        kim.id, lipid_panel.id, first_date=today - timedelta(days=100), next_due_date=today
    )
    injection = repository.add_schedule(
        lee.id, b12.id, first_date=today - timedelta(weeks=6)
    )

    # Work through past occurrences: complete most, skip one, leave the last one open
    for index in range(4):
        schedule = repository.schedules[weekly.id]
        if schedule.next_due_date >= today:
            break
        if index == 2:
            repository.record_skip(weekly.id, notes="Patient travelling")
            continue
        repository.record_completion(
            weekly.id,
            completed_at=datetime.combine(schedule.next_due_date, time(9, 30), tzinfo=UTC),
        )

    schedule = repository.schedules[injection.id]
    repository.record_completion(
        injection.id,
        completed_at=datetime.combine(schedule.next_due_date, time(14, 0), tzinfo=UTC),
        notes="Left arm",
    )
    for schedule_id in repository.schedules:
        repository.materialize_pending(schedule_id)

    return repository


async def show_dashboard(repository: InMemoryCareRepository, today: date) -> None:
    config = get_config()
    assembler = DashboardStatsAssembler(repository, config.reporting)

    console.print(Panel("📋 Dashboard", style="blue"))
    try:
        stats = await assembler.assemble(today)
    except AggregationFailed as e:
        console.print(f"❌ Dashboard unavailable: {e}", style="red")
        return

    table = Table(title=f"Dashboard for {today.isoformat()}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Total patients", str(stats.total_patients))
    table.add_row("Due today", str(stats.today_scheduled))
    table.add_row("Overdue", str(stats.overdue_items))
    table.add_row("Completion today", f"{stats.completion_rates.today}%")
    table.add_row("Completion this week", f"{stats.completion_rates.this_week}%")
    table.add_row("Completion this month", f"{stats.completion_rates.this_month}%")
    console.print(table)

    upcoming = await assembler.upcoming_schedules(today)
    table = Table(title="Upcoming schedules")
    table.add_column("Patient", style="cyan")
    table.add_column("Item", style="magenta")
    table.add_column("Due", style="yellow")
    table.add_column("Urgency", style="green")
    for entry in upcoming:
        patient = entry.patient.name if entry.patient.kind == "patient" else "(unknown)"
        item = entry.item.name if entry.item.kind == "item" else "(unknown)"
        table.add_row(
            patient,
            item,
            entry.due_date.isoformat(),
            f"{entry.urgency.status.value} / {entry.urgency.tier.value}",
        )
    console.print(table)

    summary = summarize(repository.schedules.values(), today)
    console.print(
        "Urgency: "
        + ", ".join(f"{tier.value}={count}" for tier, count in summary.by_tier.items())
    )


async def show_trends(repository: InMemoryCareRepository, today: date) -> None:
    config = get_config()
    aggregator = TrendAggregator(repository, config.reporting)

    console.print(Panel("📈 Trends", style="blue"))
    report = await aggregator.trends(today)

    table = Table(title=f"Weekly completion (weeks start {config.reporting.week_start})")
    table.add_column("Week", style="cyan")
    table.add_column("Completed", style="green")
    table.add_column("Total", style="white")
    table.add_column("Rate", style="yellow")
    for week in report.weekly.entries:
        table.add_row(
            week.week_label,
            str(week.completed_count),
            str(week.total_count),
            f"{week.rate_percent}%",
        )
    console.print(table)

    table = Table(title="Category distribution")
    table.add_column("Category", style="cyan")
    table.add_column("Count", style="white")
    table.add_column("Share", style="yellow")
    for share in report.distribution.entries:
        table.add_row(share.category.value, str(share.count), f"{share.percentage}%")
    console.print(table)


async def main() -> None:
    validate_config()
    print_config_summary()
    configure_logging(get_config().logging)

    today = date.today()
    repository = seed_repository(today)

    item = repository.items["item-lipid"]
    console.print(
        f"Next {item.name} dates ({item.period}): "
        + ", ".join(d.isoformat() for d in project_series(today, item.period, count=4))
    )

    await show_dashboard(repository, today)
    await show_trends(repository, today)


if __name__ == "__main__":
    asyncio.run(main())
