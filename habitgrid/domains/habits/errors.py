"""Habits domain failures.

Each failure is a ``ValueError`` whose message is a stable error code, so
callers can keep matching on ``str(exc)`` the way controllers map codes to
HTTP statuses.
"""

from __future__ import annotations

from typing import Any, List, Optional


class HabitError(ValueError):
    code = "habit_error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(self.code)
        self.message = message or self.code


class HabitValidationError(HabitError):
    """Malformed input or an empty required field; raised before storage access."""

    code = "validation_error"

    def __init__(self, message: Optional[str] = None, details: Optional[List[Any]] = None) -> None:
        super().__init__(message)
        self.details = details or []


class NotFoundOrUnauthorized(HabitError):
    """The habit does not exist or belongs to someone else (deliberately indistinguishable)."""

    code = "not_found"


class InvalidReference(HabitError):
    """A reorder referenced a habit that is unknown, foreign or archived."""

    code = "invalid_reference"


class TransientMutationFailure(HabitError):
    """Network or storage failure while a client mutation was in flight."""

    code = "transient_failure"
