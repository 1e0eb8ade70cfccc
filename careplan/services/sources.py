"""
Data-source contract between the engine and the persistence layer.

Key patterns:
- Protocol-based dependency injection (the engine never imports a database client)
- Generic Result type so expected fetch failures are values, not exceptions
- A single guard that turns raised or returned source errors into FetchFailure
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Generic, Protocol, TypeVar

import structlog

from careplan.config import LoggingConfig
from careplan.domain.errors import FetchFailure
from careplan.domain.models import (
    DateWindow,
    DueDateFilter,
    HistoryRecord,
    PatientSchedule,
    ScheduleFilter,
)

_SHARED_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]

structlog.configure(
    processors=[*_SHARED_PROCESSORS, structlog.processors.JSONRenderer()],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


def configure_logging(config: LoggingConfig) -> None:
    """Apply level and renderer from configuration (console for development)."""
    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))
    logging.getLogger().setLevel(getattr(logging, config.level))
    structlog.configure(
        processors=[*_SHARED_PROCESSORS, renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Data sources return it so a failed read is visible in the type system
    and every caller has to decide between degrading and raising.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class CareDataSource(Protocol):
    """
    Read-only access to patients, schedules and schedule history.

    Implementations may return Result.err or raise; the engine treats both
    as a FetchFailure. Retries, if any, belong to the implementation.
    """

    async def fetch_history(
        self, schedule_filter: ScheduleFilter | None, window: DateWindow | None
    ) -> Result[list[HistoryRecord], Exception]:
        """History records whose scheduled_date falls in `window` (all when None)."""
        ...

    async def fetch_schedules(
        self, active_only: bool, due: DueDateFilter | None
    ) -> Result[list[PatientSchedule], Exception]:
        """Schedules, optionally only active ones, filtered by next due date."""
        ...

    async def count_patients(self) -> Result[int, Exception]: ...

    async def count_active_schedules(self, due: DueDateFilter | None) -> Result[int, Exception]: ...


async def guarded_fetch(
    operation: str, call: Callable[[], Awaitable[Result[ValueT, Exception]]]
) -> Result[ValueT, FetchFailure]:
    """Run one source call, folding raised and returned errors into FetchFailure."""
    try:
        result = await call()
    except Exception as e:
        return Result.err(FetchFailure(operation, e))

    if result.is_err():
        return Result.err(FetchFailure(operation, result.unwrap_err()))
    return Result.ok(result.unwrap())
