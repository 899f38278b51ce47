"""Auth repository protocol for database operations."""

from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from studiohub.core.auth.types import Company, LockoutState, SessionEntry, User, UserRole


@runtime_checkable
class AuthRepository(Protocol):
    """Protocol for company and user persistence.

    Implementations provide actual storage (PostgreSQL, in-memory). Emails
    are passed in already lowercased.
    """

    # Company operations
    async def get_company_by_public_id(self, public_id: str) -> Company | None:
        """Get company by public ID."""
        ...

    async def get_company_by_email(self, email: str) -> Company | None:
        """Get company by login email."""
        ...

    async def create_company(self, company: Company) -> Company:
        """Insert a new company."""
        ...

    async def update_company(self, company: Company) -> Company:
        """Save every field of an existing company."""
        ...

    # User operations
    async def get_user_by_public_id(self, public_id: str) -> User | None:
        """Get user by public ID."""
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        """Get a user by login email across all companies."""
        ...

    async def get_company_user(self, company_public_id: str, public_id: str) -> User | None:
        """Get a user only if it belongs to the given company."""
        ...

    async def get_company_user_by_email(self, company_public_id: str, email: str) -> User | None:
        """Get a user of a company by email."""
        ...

    async def list_company_users(
        self,
        company_public_id: str,
        search: str | None = None,
        role: UserRole | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[User]:
        """List a company's users, newest first.

        Args:
            company_public_id: Owning company.
            search: Case-insensitive substring of name or email.
            role: Only users with this role.
            offset: Rows to skip.
            limit: Maximum rows returned.
        """
        ...

    async def count_company_users(
        self,
        company_public_id: str,
        search: str | None = None,
        role: UserRole | None = None,
    ) -> int:
        """Count a company's users with the same filters as list_company_users."""
        ...

    async def create_user(self, user: User) -> User:
        """Insert a new user, sessions included."""
        ...

    async def update_user(self, user: User) -> User:
        """Save the profile fields of a user.

        Sessions, lockout state and ``last_login`` are left untouched so this
        can never undo a concurrent session write or login.
        """
        ...

    async def delete_user(self, public_id: str) -> bool:
        """Delete a user. Returns True if a row was removed."""
        ...

    # Login state operations
    async def record_failed_login(
        self,
        public_id: str,
        now: datetime,
        max_attempts: int,
        lock_duration: timedelta,
    ) -> LockoutState | None:
        """Count one failed login in a single atomic write.

        A lock that lapsed before ``now`` is cleared first, so the failure
        counts as the first of a fresh series. Reaching ``max_attempts``
        locks the account until ``now + lock_duration``. Only the lockout
        columns are written.

        Returns:
            Lockout state as stored after the write, or None if the user is gone.
        """
        ...

    async def record_successful_login(self, public_id: str, now: datetime) -> User | None:
        """Clear lockout state and set ``last_login``; nothing else is written.

        Returns:
            The user as stored after the write, or None if the user is gone.
        """
        ...

    # Session operations
    async def compare_and_set_sessions(
        self,
        public_id: str,
        expected_version: int,
        sessions: list[SessionEntry],
    ) -> bool:
        """Replace a user's session list if nobody wrote it since it was read.

        Args:
            public_id: User whose sessions to replace.
            expected_version: ``session_version`` observed when the list was read.
            sessions: New list, stored in the given order.

        Returns:
            True if the write happened (and the version was incremented),
            False if the stored version no longer matches.
        """
        ...
