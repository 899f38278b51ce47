"""PostgreSQL implementation of AuthRepository.

A user's session list lives in the ``sessions`` JSONB column of its row.
It is only ever rewritten by ``compare_and_set_sessions``, a single
``UPDATE ... WHERE session_version = $n`` statement, so two requests that
read the same list cannot both write it back. Lockout counters are likewise
changed in place by one statement rather than written back from a read.
"""

import json
from datetime import datetime, timedelta
from typing import Any

import asyncpg

from studiohub.adapters.db.app_db import AppDatabase
from studiohub.core.auth.types import (
    Company,
    LockoutState,
    SessionEntry,
    User,
    UserRole,
)
from studiohub.core.exceptions import ConflictError

# A lock whose lock_until has passed starts a fresh series at one
_NEXT_ATTEMPTS = "(CASE WHEN lock_until <= $2 THEN 1 ELSE login_attempts + 1 END)"
_LOCK_IN_FORCE = "COALESCE(is_locked AND lock_until > $2, FALSE)"


def _json(value: Any) -> Any:
    """Decode a JSONB value that asyncpg returned as text."""
    if isinstance(value, str):
        return json.loads(value)
    return value


def _like_pattern(search: str) -> str:
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class PostgresAuthRepository:
    """PostgreSQL implementation of auth repository."""

    def __init__(self, db: AppDatabase) -> None:
        """Initialize with database connection.

        Args:
            db: Application database instance.
        """
        self._db = db

    def _row_to_company(self, row: dict[str, Any]) -> Company:
        """Convert database row to Company model."""
        return Company(
            public_id=row["public_id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            plan=row.get("plan", "free"),
            status=row.get("status", "active"),
            billing_status=row.get("billing_status", "active"),
            next_billing_date=row.get("next_billing_date"),
            slogan=row.get("slogan", ""),
            theme=_json(row.get("theme")) or {},
            contact=_json(row.get("contact")) or {},
            social=_json(row.get("social")) or {},
            settings=_json(row.get("settings")) or {},
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_user(self, row: dict[str, Any]) -> User:
        """Convert database row to User model."""
        return User(
            public_id=row["public_id"],
            company_public_id=row["company_public_id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=row.get("role", "viewer"),
            permissions=_json(row.get("permissions")) or {},
            lockout=LockoutState(
                is_locked=row.get("is_locked", False),
                login_attempts=row.get("login_attempts", 0),
                lock_until=row.get("lock_until"),
            ),
            last_login=row.get("last_login"),
            status=row.get("status", "active"),
            sessions=[SessionEntry(**s) for s in _json(row.get("sessions")) or []],
            session_version=row.get("session_version", 0),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # Company operations
    async def get_company_by_public_id(self, public_id: str) -> Company | None:
        """Get company by public ID."""
        row = await self._db.fetch_one(
            "SELECT * FROM companies WHERE public_id = $1",
            public_id,
        )
        return self._row_to_company(row) if row else None

    async def get_company_by_email(self, email: str) -> Company | None:
        """Get company by login email."""
        row = await self._db.fetch_one(
            "SELECT * FROM companies WHERE email = $1",
            email,
        )
        return self._row_to_company(row) if row else None

    async def create_company(self, company: Company) -> Company:
        """Insert a new company."""
        try:
            row = await self._db.fetch_one(
                """
                INSERT INTO companies (
                    public_id, name, email, password_hash, plan, status,
                    billing_status, next_billing_date, slogan,
                    theme, contact, social, settings
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
                RETURNING *
                """,
                company.public_id,
                company.name,
                company.email,
                company.password_hash,
                company.plan.value,
                company.status.value,
                company.billing_status.value,
                company.next_billing_date,
                company.slogan,
                company.theme.model_dump_json(),
                company.contact.model_dump_json(),
                company.social.model_dump_json(),
                company.settings.model_dump_json(),
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("Email already registered") from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_company(row)

    async def update_company(self, company: Company) -> Company:
        """Save every field of an existing company."""
        row = await self._db.fetch_one(
            """
            UPDATE companies SET
                name = $2, plan = $3, status = $4, billing_status = $5,
                next_billing_date = $6, slogan = $7, theme = $8,
                contact = $9, social = $10, settings = $11, updated_at = now()
            WHERE public_id = $1
            RETURNING *
            """,
            company.public_id,
            company.name,
            company.plan.value,
            company.status.value,
            company.billing_status.value,
            company.next_billing_date,
            company.slogan,
            company.theme.model_dump_json(),
            company.contact.model_dump_json(),
            company.social.model_dump_json(),
            company.settings.model_dump_json(),
        )
        return self._row_to_company(row) if row else company

    # User operations
    async def get_user_by_public_id(self, public_id: str) -> User | None:
        """Get user by public ID."""
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE public_id = $1",
            public_id,
        )
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        """Get the oldest user with this email across all companies."""
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE email = $1 ORDER BY created_at LIMIT 1",
            email,
        )
        return self._row_to_user(row) if row else None

    async def get_company_user(self, company_public_id: str, public_id: str) -> User | None:
        """Get a user only if it belongs to the given company."""
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE public_id = $1 AND company_public_id = $2",
            public_id,
            company_public_id,
        )
        return self._row_to_user(row) if row else None

    async def get_company_user_by_email(self, company_public_id: str, email: str) -> User | None:
        """Get a user of a company by email."""
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE company_public_id = $1 AND email = $2",
            company_public_id,
            email,
        )
        return self._row_to_user(row) if row else None

    async def list_company_users(
        self,
        company_public_id: str,
        search: str | None = None,
        role: UserRole | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[User]:
        """List a company's users, newest first."""
        rows = await self._db.fetch_all(
            """
            SELECT * FROM users
            WHERE company_public_id = $1
              AND ($2::text IS NULL OR name ILIKE $2 OR email ILIKE $2)
              AND ($3::text IS NULL OR role = $3)
            ORDER BY created_at DESC
            OFFSET $4 LIMIT $5
            """,
            company_public_id,
            _like_pattern(search) if search else None,
            role.value if role else None,
            offset,
            limit,
        )
        return [self._row_to_user(row) for row in rows]

    async def count_company_users(
        self,
        company_public_id: str,
        search: str | None = None,
        role: UserRole | None = None,
    ) -> int:
        """Count a company's users."""
        count = await self._db.fetch_value(
            """
            SELECT count(*) FROM users
            WHERE company_public_id = $1
              AND ($2::text IS NULL OR name ILIKE $2 OR email ILIKE $2)
              AND ($3::text IS NULL OR role = $3)
            """,
            company_public_id,
            _like_pattern(search) if search else None,
            role.value if role else None,
        )
        return int(count or 0)

    async def create_user(self, user: User) -> User:
        """Insert a new user."""
        try:
            row = await self._db.fetch_one(
                """
                INSERT INTO users (
                    public_id, company_public_id, name, email, password_hash,
                    role, permissions, is_locked, login_attempts, lock_until,
                    last_login, status, sessions, session_version
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14)
                RETURNING *
                """,
                user.public_id,
                user.company_public_id,
                user.name,
                user.email,
                user.password_hash,
                user.role.value,
                user.permissions.model_dump_json(),
                user.lockout.is_locked,
                user.lockout.login_attempts,
                user.lockout.lock_until,
                user.last_login,
                user.status.value,
                json.dumps([s.model_dump(mode="json") for s in user.sessions]),
                user.session_version,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("A user with this email already exists in the company") from None
        assert row is not None, "INSERT RETURNING should always return a row"
        return self._row_to_user(row)

    async def update_user(self, user: User) -> User:
        """Save the profile fields of a user."""
        try:
            row = await self._db.fetch_one(
                """
                UPDATE users SET
                    name = $2, email = $3, password_hash = $4, role = $5,
                    permissions = $6, status = $7,
                    updated_at = now()
                WHERE public_id = $1
                RETURNING *
                """,
                user.public_id,
                user.name,
                user.email,
                user.password_hash,
                user.role.value,
                user.permissions.model_dump_json(),
                user.status.value,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("A user with this email already exists in the company") from None
        return self._row_to_user(row) if row else user

    async def delete_user(self, public_id: str) -> bool:
        """Delete a user."""
        result = await self._db.execute(
            "DELETE FROM users WHERE public_id = $1",
            public_id,
        )
        return result.endswith(" 1")

    # Login state operations
    async def record_failed_login(
        self,
        public_id: str,
        now: datetime,
        max_attempts: int,
        lock_duration: timedelta,
    ) -> LockoutState | None:
        """Count one failed login in a single UPDATE.

        Every SET expression reads the row as it stands under the row lock,
        so concurrent failures each add one.
        """
        row = await self._db.fetch_one(
            f"""
            UPDATE users SET
                login_attempts = {_NEXT_ATTEMPTS},
                is_locked = {_LOCK_IN_FORCE} OR {_NEXT_ATTEMPTS} >= $3,
                lock_until = CASE
                    WHEN {_LOCK_IN_FORCE} THEN lock_until
                    WHEN {_NEXT_ATTEMPTS} >= $3 THEN $4
                    ELSE NULL
                END,
                updated_at = now()
            WHERE public_id = $1
            RETURNING is_locked, login_attempts, lock_until
            """,
            public_id,
            now,
            max_attempts,
            now + lock_duration,
        )
        if not row:
            return None
        return LockoutState(
            is_locked=row["is_locked"],
            login_attempts=row["login_attempts"],
            lock_until=row["lock_until"],
        )

    async def record_successful_login(self, public_id: str, now: datetime) -> User | None:
        """Clear lockout state and set last_login."""
        row = await self._db.fetch_one(
            """
            UPDATE users SET
                is_locked = FALSE, login_attempts = 0, lock_until = NULL,
                last_login = $2, updated_at = now()
            WHERE public_id = $1
            RETURNING *
            """,
            public_id,
            now,
        )
        return self._row_to_user(row) if row else None

    # Session operations
    async def compare_and_set_sessions(
        self,
        public_id: str,
        expected_version: int,
        sessions: list[SessionEntry],
    ) -> bool:
        """Replace the session list if the stored version still matches."""
        row = await self._db.fetch_one(
            """
            UPDATE users
            SET sessions = $3::jsonb,
                session_version = session_version + 1,
                updated_at = now()
            WHERE public_id = $1 AND session_version = $2
            RETURNING session_version
            """,
            public_id,
            expected_version,
            json.dumps([s.model_dump(mode="json") for s in sessions]),
        )
        return row is not None
