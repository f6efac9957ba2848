"""
Error taxonomy shared by the stores, the auth layer and the HTTP binding.

Each error carries the HTTP status it maps to so the application can
translate it with a single exception handler.
"""
from __future__ import annotations


class ComfortBitesError(Exception):
    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ComfortBitesError):
    """Malformed or out-of-range input, rejected before it reaches a store."""

    status_code = 400
    default_message = "Invalid request"


class UsernameTaken(ValidationError):
    default_message = "Username already exists"


class AuthenticationError(ComfortBitesError):
    """Bad credentials or missing session. Never says which factor failed."""

    status_code = 401
    default_message = "Invalid username or password"


class NotFoundError(ComfortBitesError):
    status_code = 404
    default_message = "Recipe not found"


class StoreUnavailable(ComfortBitesError):
    """The backing store could not complete an operation."""

    status_code = 503
    default_message = "Storage is temporarily unavailable"
