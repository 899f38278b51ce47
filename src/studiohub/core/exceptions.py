"""Domain-specific exceptions.

All exceptions in the studiohub system inherit from StudioHubError, making it
easy to catch every system error at the API boundary while still being able
to handle specific error types. Each class carries the HTTP status and the
machine-readable code the API layer renders for it.
"""

from __future__ import annotations


class StudioHubError(Exception):
    """Base exception for all studiohub errors.

    Attributes:
        status_code: HTTP status the API layer answers with.
        code: Stable machine-readable error code.
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable description. Falls back to the class default.
        """
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(StudioHubError):
    """Malformed or out-of-range input."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class ConflictError(StudioHubError):
    """A unique value (usually an email) is already taken."""

    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists"


class AuthenticationError(StudioHubError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class AccountLockedError(StudioHubError):
    """Login refused because the account is temporarily locked.

    Reported distinctly from invalid credentials so the client can tell the
    user to wait rather than retry.
    """

    status_code = 423
    code = "ACCOUNT_LOCKED"
    default_message = "Account locked"


class ForbiddenError(StudioHubError):
    """Authenticated, but not allowed to perform the operation."""

    status_code = 403
    code = "FORBIDDEN"
    default_message = "Insufficient permissions"


class NotFoundError(StudioHubError):
    """A referenced entity does not exist."""

    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class DataIntegrityError(StudioHubError):
    """Stored data violates an invariant, e.g. a user whose company is gone.

    This is never a normal "not found": it means the store is inconsistent.
    The message is logged but never sent to clients.
    """

    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"
