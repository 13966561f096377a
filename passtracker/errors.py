from __future__ import annotations

import logging
import sqlite3
from typing import Callable, TypeVar

from .models import OperationResult

T = TypeVar("T")


class PassTrackerError(Exception):
    """Base class for failures reported back to the caller as an error message."""

    message = "Operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)

    @property
    def text(self) -> str:
        return str(self.args[0])


class Unauthorized(PassTrackerError):
    message = "Unauthorized"


class NotAuthenticated(Unauthorized):
    message = "Unauthorized: not logged in"


class NotAdmin(Unauthorized):
    message = "Unauthorized: admin access required"


class MissingFields(PassTrackerError):
    message = "Required fields are missing"


class InvalidStars(PassTrackerError):
    message = "Stars must be between 0 and 40"


class InvalidSide(PassTrackerError):
    message = "Side must be CT or T"


class InvalidDate(PassTrackerError):
    message = "Date must be in YYYY-MM-DD format"


class AccountNotFound(PassTrackerError):
    message = "Steam account not found"


class WriteFailed(PassTrackerError):
    message = "Failed to write to the database"


class ReadFailed(PassTrackerError):
    message = "Failed to read from the database"


class FetchFailed(PassTrackerError):
    message = "Failed to fetch sessions"


def run_operation(
    logger: logging.Logger,
    action: str,
    store_error: type[PassTrackerError],
    store_message: str,
    operation: Callable[[], T],
) -> OperationResult[T]:
    """Run one core operation and turn any failure into an error result."""
    try:
        return OperationResult(data=operation())
    except PassTrackerError as exc:
        logger.info("Rejected %s: %s", action, exc.text)
        return OperationResult(error=exc.text, error_type=type(exc))
    except sqlite3.Error:
        logger.exception("Error during %s", action)
        return OperationResult(error=store_message, error_type=store_error)
