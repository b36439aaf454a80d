"""
Application Error Taxonomy

Every failure the ordering backend reports falls into one of these classes.
The FastAPI layer maps each class to an HTTP status and a short
user-facing message; nothing below this module knows about HTTP.

    - ValidationError: missing or invalid input, raised before any I/O
    - AuthenticationError: missing, expired or rejected credentials
    - AuthorizationError: role mismatch or wrong-owner mutation
    - NotFoundError: the requested document does not exist
    - StoreError: Document Store, Blob Store or auth provider I/O failure
    - SubscriptionError: a live order feed stopped delivering
"""

from typing import Optional


class FoodzError(Exception):
    """Base class for all application errors."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(FoodzError):
    status_code = 400
    error = "Validation Error"


class AuthorizationError(FoodzError):
    status_code = 403
    error = "Forbidden"


class AuthenticationError(AuthorizationError):
    status_code = 401
    error = "Unauthorized"


class NotFoundError(FoodzError):
    status_code = 404
    error = "Not Found"


class StoreError(FoodzError):
    status_code = 503
    error = "Service Unavailable"


class SubscriptionError(StoreError):
    """Terminal failure of a live subscription; the caller must resubscribe."""
