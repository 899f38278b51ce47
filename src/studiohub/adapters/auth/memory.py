"""In-memory implementation of AuthRepository.

Used by the test suite and by ``STORAGE_BACKEND=memory`` for local
development. Records are stored as deep copies so callers can never mutate
stored state without going through the repository.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

from studiohub.core.auth.lockout import LockoutGuard
from studiohub.core.auth.tokens import utcnow
from studiohub.core.auth.types import Company, LockoutState, SessionEntry, User, UserRole
from studiohub.core.exceptions import ConflictError


class InMemoryAuthRepository:
    """Dict-backed auth repository."""

    def __init__(self) -> None:
        """Initialize empty stores."""
        self._companies: dict[str, Company] = {}
        self._users: dict[str, User] = {}
        self._lock = asyncio.Lock()

    # Company operations
    async def get_company_by_public_id(self, public_id: str) -> Company | None:
        """Get company by public ID."""
        company = self._companies.get(public_id)
        return company.model_copy(deep=True) if company else None

    async def get_company_by_email(self, email: str) -> Company | None:
        """Get company by login email."""
        for company in self._companies.values():
            if company.email == email:
                return company.model_copy(deep=True)
        return None

    async def create_company(self, company: Company) -> Company:
        """Insert a new company."""
        async with self._lock:
            if company.public_id in self._companies:
                raise ConflictError("Company already exists")
            if any(c.email == company.email for c in self._companies.values()):
                raise ConflictError("Email already registered")
            self._companies[company.public_id] = company.model_copy(deep=True)
        return company.model_copy(deep=True)

    async def update_company(self, company: Company) -> Company:
        """Save every field of an existing company."""
        stored = company.model_copy(update={"updated_at": utcnow()}, deep=True)
        async with self._lock:
            self._companies[company.public_id] = stored
        return stored.model_copy(deep=True)

    # User operations
    async def get_user_by_public_id(self, public_id: str) -> User | None:
        """Get user by public ID."""
        user = self._users.get(public_id)
        return user.model_copy(deep=True) if user else None

    async def get_user_by_email(self, email: str) -> User | None:
        """Get the oldest user with this email across all companies."""
        matches = sorted(
            (u for u in self._users.values() if u.email == email),
            key=lambda u: u.created_at,
        )
        return matches[0].model_copy(deep=True) if matches else None

    async def get_company_user(self, company_public_id: str, public_id: str) -> User | None:
        """Get a user only if it belongs to the given company."""
        user = self._users.get(public_id)
        if user is None or user.company_public_id != company_public_id:
            return None
        return user.model_copy(deep=True)

    async def get_company_user_by_email(self, company_public_id: str, email: str) -> User | None:
        """Get a user of a company by email."""
        for user in self._users.values():
            if user.company_public_id == company_public_id and user.email == email:
                return user.model_copy(deep=True)
        return None

    def _filter_users(
        self,
        company_public_id: str,
        search: str | None,
        role: UserRole | None,
    ) -> list[User]:
        needle = search.lower() if search else None
        users = [
            u
            for u in self._users.values()
            if u.company_public_id == company_public_id
            and (role is None or u.role == role)
            and (needle is None or needle in u.name.lower() or needle in u.email.lower())
        ]
        return sorted(users, key=lambda u: u.created_at, reverse=True)

    async def list_company_users(
        self,
        company_public_id: str,
        search: str | None = None,
        role: UserRole | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[User]:
        """List a company's users, newest first."""
        users = self._filter_users(company_public_id, search, role)
        return [u.model_copy(deep=True) for u in users[offset : offset + limit]]

    async def count_company_users(
        self,
        company_public_id: str,
        search: str | None = None,
        role: UserRole | None = None,
    ) -> int:
        """Count a company's users."""
        return len(self._filter_users(company_public_id, search, role))

    async def create_user(self, user: User) -> User:
        """Insert a new user."""
        async with self._lock:
            if user.public_id in self._users:
                raise ConflictError("User already exists")
            if any(
                u.company_public_id == user.company_public_id and u.email == user.email
                for u in self._users.values()
            ):
                raise ConflictError("A user with this email already exists in the company")
            self._users[user.public_id] = user.model_copy(deep=True)
        return user.model_copy(deep=True)

    async def update_user(self, user: User) -> User:
        """Save the profile fields of a user."""
        async with self._lock:
            stored = self._users.get(user.public_id)
            if stored is None:
                return user
            if any(
                u.public_id != user.public_id
                and u.company_public_id == user.company_public_id
                and u.email == user.email
                for u in self._users.values()
            ):
                raise ConflictError("A user with this email already exists in the company")
            updated = user.model_copy(
                update={
                    "lockout": stored.lockout,
                    "last_login": stored.last_login,
                    "sessions": stored.sessions,
                    "session_version": stored.session_version,
                    "updated_at": utcnow(),
                },
                deep=True,
            )
            self._users[user.public_id] = updated
        return updated.model_copy(deep=True)

    async def delete_user(self, public_id: str) -> bool:
        """Delete a user."""
        async with self._lock:
            return self._users.pop(public_id, None) is not None

    # Login state operations
    async def record_failed_login(
        self,
        public_id: str,
        now: datetime,
        max_attempts: int,
        lock_duration: timedelta,
    ) -> LockoutState | None:
        """Count one failed login under the store lock."""
        guard = LockoutGuard(max_attempts=max_attempts, lock_duration=lock_duration)
        async with self._lock:
            stored = self._users.get(public_id)
            if stored is None:
                return None
            lockout = guard.on_failed_attempt(stored.lockout, now)
            self._users[public_id] = stored.model_copy(
                update={"lockout": lockout, "updated_at": utcnow()}
            )
        return lockout.model_copy()

    async def record_successful_login(self, public_id: str, now: datetime) -> User | None:
        """Clear lockout state and set last_login."""
        async with self._lock:
            stored = self._users.get(public_id)
            if stored is None:
                return None
            updated = stored.model_copy(
                update={
                    "lockout": LockoutState(),
                    "last_login": now,
                    "updated_at": utcnow(),
                }
            )
            self._users[public_id] = updated
        return updated.model_copy(deep=True)

    # Session operations
    async def compare_and_set_sessions(
        self,
        public_id: str,
        expected_version: int,
        sessions: list[SessionEntry],
    ) -> bool:
        """Replace the session list if the stored version still matches."""
        async with self._lock:
            stored = self._users.get(public_id)
            if stored is None or stored.session_version != expected_version:
                return False
            self._users[public_id] = stored.model_copy(
                update={
                    "sessions": [s.model_copy(deep=True) for s in sessions],
                    "session_version": expected_version + 1,
                },
            )
        return True
