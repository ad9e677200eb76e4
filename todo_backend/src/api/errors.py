from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional


class AppError(Exception):
    """
    Base class for errors surfaced to API callers.

    Only `message` reaches the client; anything diagnostic belongs in the log.
    """

    status_code: int = 500
    error: str = "AppError"

    def __init__(self, message: str, detail: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class AuthError(AppError):
    """No resolvable identity for the request."""

    status_code = 401
    error = "AuthError"

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ValidationError(AppError):
    """Input rejected before any store access."""

    status_code = 422
    error = "ValidationError"


class NotFoundError(AppError):
    """Owner-scoped mutation matched zero rows."""

    status_code = 404
    error = "NotFound"


class StoreError(AppError):
    """Query failure raised by the store adapter."""

    error = "StoreError"


class OperationFailedError(AppError):
    """Generic failure re-raised by the service layer after a StoreError was logged."""

    error = "OperationFailed"


class RecurrenceExpansionError(AppError):
    """Successor creation failed after a completed recurring todo. Never leaves the service."""

    error = "RecurrenceExpansionError"


@contextmanager
def failing_as(operation: str, log: logging.Logger) -> Iterator[None]:
    """Log a StoreError raised inside the block and re-raise it as a generic OperationFailedError."""
    try:
        yield
    except StoreError as exc:
        log.error("Failed to %s: %s", operation, exc.detail)
        raise OperationFailedError(f"Failed to {operation}") from exc
