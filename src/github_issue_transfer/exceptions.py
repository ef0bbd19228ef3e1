"""
Custom exception classes for the GitHub issue transfer tool.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ImportErrorDetail


class MigrationError(Exception):
    """Base exception for migration errors."""


class ConfigurationError(MigrationError):
    """Raised for invalid run configuration, before any network activity."""


class FatalSubmissionError(MigrationError):
    """Raised when the destination rejects a creation request."""

    def __init__(self, message: str, *, status: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status: int | None = status
        self.detail: str | None = detail


class ImportRejectedError(MigrationError):
    """Raised when an issue import reaches a terminal status other than 'imported'."""

    def __init__(
        self,
        status: str,
        location_ref: str,
        errors: tuple[ImportErrorDetail, ...] = (),
    ) -> None:
        self.status: str = status
        self.location_ref: str = location_ref
        self.errors: tuple[ImportErrorDetail, ...] = errors
        lines = [f"Issue import {location_ref} ended with status '{status}'"]
        lines.extend(f"  {error}" for error in errors)
        super().__init__("\n".join(lines))


class RetryExhaustedError(MigrationError):
    """Raised when an issue import is still pending after the maximum number of polls."""

    def __init__(self, location_ref: str, last_status: str, attempts: int) -> None:
        self.location_ref: str = location_ref
        self.last_status: str = last_status
        self.attempts: int = attempts
        super().__init__(
            f"Issue import {location_ref} still '{last_status}' after {attempts} status checks"
        )


class NumberCollisionError(MigrationError):
    """Raised when two source records claim the same number."""


class NumberVerificationError(MigrationError):
    """Raised when a created issue number does not match the slot it should fill."""


class TransientRequestError(MigrationError):
    """Raised when a destination call failed for a reason that may not repeat (5xx, connection error)."""
