"""Application error taxonomy.

Service functions raise these; the global handlers in
``calledit.middleware.error_handler`` turn them into ``{"error": ...}`` JSON
responses with the matching status code.
"""

from __future__ import annotations


class CalledItError(Exception):
    """Base exception for the application."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(CalledItError):
    """Missing or malformed required input."""

    status_code = 400


class AuthenticationRequired(CalledItError):
    """No valid session."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class AuthorizationDenied(CalledItError):
    """Authenticated, but not permitted to perform the action."""

    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFound(CalledItError):
    """Referenced entity does not exist."""

    status_code = 404


class ConflictError(CalledItError):
    """Duplicate relationship or state mismatch."""

    status_code = 409


class UpstreamFailure(CalledItError):
    """Store or external service failure. The message is never shown to clients."""

    status_code = 500
