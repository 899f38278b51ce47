"""Core domain - business logic independent of storage and transport."""

from .exceptions import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    DataIntegrityError,
    ForbiddenError,
    NotFoundError,
    StudioHubError,
    ValidationError,
)

__all__ = [
    "StudioHubError",
    "ValidationError",
    "ConflictError",
    "AuthenticationError",
    "AccountLockedError",
    "ForbiddenError",
    "NotFoundError",
    "DataIntegrityError",
]
