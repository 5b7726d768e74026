"""Domain error taxonomy.

Services raise these; the global error handler turns them into
``{"message": ...}`` JSON responses with the matching status code.
"""

from __future__ import annotations


class DevQuestError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DevQuestError):
    """Missing or invalid input."""

    status_code = 400


class AuthenticationError(DevQuestError):
    """Missing, invalid or expired credential."""

    status_code = 401


class AuthorizationError(DevQuestError):
    """Caller lacks the role or ownership required."""

    status_code = 403


class NotFoundError(DevQuestError):
    """Entity id did not resolve."""

    status_code = 404
