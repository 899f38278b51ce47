"""Dependency injection and application lifespan management."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
from fastapi import Request

from studiohub.adapters.auth.memory import InMemoryAuthRepository
from studiohub.adapters.auth.postgres import PostgresAuthRepository
from studiohub.adapters.db.app_db import AppDatabase
from studiohub.core.auth.jwt import TokenConfig, TokenService
from studiohub.core.auth.lockout import LockoutGuard
from studiohub.core.auth.password import PasswordHasher
from studiohub.core.auth.repository import AuthRepository
from studiohub.core.auth.service import AuthService
from studiohub.core.company.service import CompanySettingsService
from studiohub.core.users.service import RoleCheckMode, UserManagementService

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = structlog.get_logger()


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.app_env = os.getenv("APP_ENV", "development")
        self.storage_backend = os.getenv("STORAGE_BACKEND", "postgres")
        self.app_database_url = os.getenv(
            "APP_DATABASE_URL", "postgresql://localhost:5432/studiohub"
        )
        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "3000"))

        # Token signing
        self.jwt_secret = os.getenv("JWT_SECRET", "")
        self.jwt_refresh_secret = os.getenv("JWT_REFRESH_SECRET", "")

        # Password hashing and lockout
        self.bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "12"))
        self.max_login_attempts = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
        self.lock_minutes = int(os.getenv("LOCK_MINUTES", "30"))

        self.role_check_mode = RoleCheckMode(os.getenv("ROLE_CHECK_MODE", "strict").lower())

    @property
    def is_production(self) -> bool:
        """Whether cookies must be marked ``secure``."""
        return self.app_env.lower() == "production"

    def token_config(self) -> TokenConfig:
        """Build the signing configuration; fails when secrets are missing or equal."""
        return TokenConfig(
            access_secret=self.jwt_secret,
            refresh_secret=self.jwt_refresh_secret,
        )


settings = Settings()


def build_services(
    repo: AuthRepository,
    config: Settings,
) -> tuple[AuthService, UserManagementService, CompanySettingsService]:
    """Wire the domain services around a repository."""
    auth_service = AuthService(
        repo,
        TokenService(config.token_config()),
        hasher=PasswordHasher(rounds=config.bcrypt_rounds),
        guard=LockoutGuard(
            max_attempts=config.max_login_attempts,
            lock_duration=timedelta(minutes=config.lock_minutes),
        ),
    )
    user_service = UserManagementService(
        repo, auth_service, role_check_mode=config.role_check_mode
    )
    company_service = CompanySettingsService(repo)
    return auth_service, user_service, company_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    This context manager handles:
    - Signing secret validation
    - Database connection pool and schema setup
    - Service construction
    """
    app_db: AppDatabase | None = None
    repo: AuthRepository
    if settings.storage_backend == "memory":
        repo = InMemoryAuthRepository()
        logger.warning("using_in_memory_storage")
    else:
        app_db = AppDatabase(settings.app_database_url)
        await app_db.connect()
        await app_db.ensure_schema()
        repo = PostgresAuthRepository(app_db)

    auth_service, user_service, company_service = build_services(repo, settings)

    # Store in app state
    app.state.settings = settings
    app.state.app_db = app_db
    app.state.auth_service = auth_service
    app.state.user_service = user_service
    app.state.company_service = company_service

    logger.info(
        "app_started",
        env=settings.app_env,
        storage=settings.storage_backend,
        role_check_mode=settings.role_check_mode.value,
    )

    yield

    if app_db is not None:
        await app_db.close()


def get_settings(request: Request) -> Settings:
    """Get settings from app state, falling back to the environment."""
    return getattr(request.app.state, "settings", settings)


def get_auth_service(request: Request) -> AuthService:
    """Get auth service from app state."""
    service: AuthService = request.app.state.auth_service
    return service


def get_user_service(request: Request) -> UserManagementService:
    """Get user management service from app state."""
    service: UserManagementService = request.app.state.user_service
    return service


def get_company_service(request: Request) -> CompanySettingsService:
    """Get company settings service from app state."""
    service: CompanySettingsService = request.app.state.company_service
    return service
