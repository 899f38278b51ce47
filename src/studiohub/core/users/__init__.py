"""Company user management."""

from studiohub.core.users.service import (
    Actor,
    QuotaExceededError,
    RoleCheckMode,
    UserManagementService,
    UserPage,
)

__all__ = [
    "Actor",
    "QuotaExceededError",
    "RoleCheckMode",
    "UserManagementService",
    "UserPage",
]
