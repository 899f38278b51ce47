"""API middleware."""

from studiohub.entrypoints.api.middleware.jwt_auth import (
    AuthContext,
    RequireAdmin,
    RequireUser,
    require_admin,
    verify_access_token,
)

__all__ = [
    "AuthContext",
    "verify_access_token",
    "require_admin",
    "RequireUser",
    "RequireAdmin",
]
