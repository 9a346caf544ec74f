# src/now_or_never/core/errors.py

"""
Error taxonomy for the lifecycle engine.

Only validation errors ever reach a caller as exceptions. Not-found conditions
are reported as False / None results, persistence failures are surfaced as
events, and malformed persisted records are dropped one by one during load.
"""

from __future__ import annotations


class NowOrNeverError(Exception):
    """Base class for all engine errors."""


class TaskValidationError(NowOrNeverError, ValueError):
    """Rejected task input (empty name, bad duration). No state was mutated."""


class MalformedStateError(NowOrNeverError, ValueError):
    """A persisted record failed shape validation."""


class IdGenerationError(NowOrNeverError, RuntimeError):
    """A unique task id could not be produced."""


class PersistenceError(NowOrNeverError):
    """The persistence collaborator failed. In-memory state stays authoritative."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed{detail}")
