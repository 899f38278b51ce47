"""Auth domain types and utilities."""

from studiohub.core.auth.jwt import (
    InvalidSignatureError,
    TokenConfig,
    TokenError,
    TokenExpiredError,
    TokenService,
    WrongTokenTypeError,
)
from studiohub.core.auth.lockout import LockoutGuard
from studiohub.core.auth.password import PasswordHasher, hash_password, verify_password
from studiohub.core.auth.repository import AuthRepository
from studiohub.core.auth.service import AuthResult, AuthService
from studiohub.core.auth.sessions import SessionRegistry
from studiohub.core.auth.types import (
    Company,
    DeviceInfo,
    SessionEntry,
    User,
    UserRole,
    UserStatus,
)

__all__ = [
    "Company",
    "User",
    "UserRole",
    "UserStatus",
    "DeviceInfo",
    "SessionEntry",
    "TokenConfig",
    "TokenService",
    "TokenError",
    "InvalidSignatureError",
    "TokenExpiredError",
    "WrongTokenTypeError",
    "hash_password",
    "verify_password",
    "PasswordHasher",
    "LockoutGuard",
    "SessionRegistry",
    "AuthRepository",
    "AuthService",
    "AuthResult",
]
