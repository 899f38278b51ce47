"""Auth service fixtures: clock, signing config and in-memory wiring."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from studiohub.adapters.auth.memory import InMemoryAuthRepository
from studiohub.core.auth.jwt import TokenConfig, TokenService
from studiohub.core.auth.lockout import LockoutGuard
from studiohub.core.auth.password import PasswordHasher
from studiohub.core.auth.service import AuthService
from studiohub.core.company.service import CompanySettingsService
from studiohub.core.users.service import RoleCheckMode, UserManagementService

# Lowest work factor bcrypt accepts
TEST_BCRYPT_ROUNDS = 4

ACCESS_SECRET = "test-access-secret"  # pragma: allowlist secret
REFRESH_SECRET = "test-refresh-secret"  # pragma: allowlist secret


class FakeClock:
    """Controllable replacement for ``utcnow``."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        """Move time forward by a ``timedelta(**kwargs)``."""
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    """Return a clock starting at a fixed instant."""
    return FakeClock(datetime(2025, 3, 3, 9, 0, tzinfo=UTC))


@pytest.fixture
def token_config() -> TokenConfig:
    """Return a signing config with distinct test secrets."""
    return TokenConfig(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def token_service(token_config: TokenConfig, clock: FakeClock) -> TokenService:
    """Return a token service over the test config and clock."""
    return TokenService(token_config, clock=clock)


@pytest.fixture
def hasher() -> PasswordHasher:
    """Return a fast password hasher."""
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def memory_repo() -> InMemoryAuthRepository:
    """Return an empty in-memory repository."""
    return InMemoryAuthRepository()


@pytest.fixture
def auth_service(
    memory_repo: InMemoryAuthRepository,
    token_service: TokenService,
    hasher: PasswordHasher,
    clock: FakeClock,
) -> AuthService:
    """Return an auth service wired to the in-memory repository."""
    return AuthService(
        memory_repo,
        token_service,
        hasher=hasher,
        guard=LockoutGuard(),
        clock=clock,
    )


@pytest.fixture
def user_service(
    memory_repo: InMemoryAuthRepository,
    auth_service: AuthService,
) -> UserManagementService:
    """Return a user management service in strict mode."""
    return UserManagementService(memory_repo, auth_service, RoleCheckMode.STRICT)


@pytest.fixture
def legacy_user_service(
    memory_repo: InMemoryAuthRepository,
    auth_service: AuthService,
) -> UserManagementService:
    """Return a user management service in legacy mode."""
    return UserManagementService(memory_repo, auth_service, RoleCheckMode.LEGACY)


@pytest.fixture
def company_service(memory_repo: InMemoryAuthRepository) -> CompanySettingsService:
    """Return a company settings service."""
    return CompanySettingsService(memory_repo)
