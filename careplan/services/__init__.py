"""
Core services for the application.

This package contains the scheduling and analytics services: recurrence
arithmetic, urgency classification, completion rates, trend reports and
dashboard assembly, plus the data-source contract they read through.
"""

from .completion import CompletionRateCalculator, calculate_rate, round1
from .dashboard import DashboardStatsAssembler
from .recurrence import advance_after_completion, next_date, project_series
from .sources import CareDataSource, Result, configure_logging
from .trends import TrendAggregator, format_week_label, start_of_week
from .urgency import classify, summarize

__all__ = [
    "CareDataSource",
    "CompletionRateCalculator",
    "DashboardStatsAssembler",
    "Result",
    "TrendAggregator",
    "advance_after_completion",
    "calculate_rate",
    "classify",
    "configure_logging",
    "format_week_label",
    "next_date",
    "project_series",
    "round1",
    "start_of_week",
    "summarize",
]
