"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Every key is optional; store errors carry ``operation``/``attempts``, which
    are logged but never sent to clients.
    """

    operation: str
    attempts: int
    limit: int
    retry_after: int
    errors: list[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthorizationAppError(AppError):
    """Raised when an owner id is unknown or not allowed for the operation."""


class NotFoundAppError(AppError):
    """Raised when a lookup matches no rows. A normal outcome, not a fault."""


class RateLimitExceededAppError(AppError):
    """Raised when a client has used up its admission budget."""


class StoreAppError(AppError):
    """Raised when the backing store fails (connectivity or constraints).

    ``message`` is always safe to show to clients; the driver exception is
    chained as ``__cause__`` and only ever logged.
    """


class DuplicateKeyAppError(StoreAppError):
    """Raised when an insert collides with an existing primary key."""


class ReferenceViolationAppError(StoreAppError):
    """Raised when an insert references a row that does not exist."""
