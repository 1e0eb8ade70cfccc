"""
Error taxonomy for the scheduling and analytics engine.

- InvalidArgument: bad input to a pure computation, always surfaced.
- FetchFailure: the persistence collaborator failed; recoverable in trend reports.
- AggregationFailed: a dashboard assembly could not complete.
"""


class CarePlanError(Exception):
    """Base class for all engine errors."""


class InvalidArgument(CarePlanError, ValueError):
    """Malformed period, non-positive value, invalid date or count."""


class FetchFailure(CarePlanError):
    """A read from the persistence collaborator failed."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class AggregationFailed(CarePlanError):
    """Dashboard assembly failed because one of its reads failed."""

    def __init__(self, report: str, cause: BaseException) -> None:
        super().__init__(f"Failed to assemble {report}: {cause}")
        self.report = report
        self.cause = cause
