"""Company user management: CRUD, password changes and activation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from studiohub.core.auth.repository import AuthRepository
from studiohub.core.auth.service import AuthService, normalize_email
from studiohub.core.auth.types import (
    ADMIN_ROLES,
    User,
    UserPermissions,
    UserRole,
    UserStatus,
)
from studiohub.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6


class RoleCheckMode(str, Enum):
    """How self-or-admin checks are evaluated.

    ``strict`` admits admins and the user themselves. ``legacy`` keeps the
    behaviour older clients were built against: only the user themselves
    passes, and everyone must give their current password to change it.
    """

    STRICT = "strict"
    LEGACY = "legacy"


class QuotaExceededError(ForbiddenError):
    """The company already has as many users as its plan allows."""

    code = "QUOTA_EXCEEDED"
    default_message = "User limit reached"


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a user-management operation."""

    public_id: str
    company_public_id: str
    role: UserRole


@dataclass
class UserPage:
    """One page of a user listing."""

    users: list[User]
    current: int
    pages: int
    total: int


class UserManagementService:
    """Manages the staff users of a company."""

    def __init__(
        self,
        repo: AuthRepository,
        auth: AuthService,
        role_check_mode: RoleCheckMode = RoleCheckMode.STRICT,
    ) -> None:
        """Initialize the service.

        Args:
            repo: Company and user persistence.
            auth: Auth service, used for hashing and session revocation.
            role_check_mode: Evaluation of self-or-admin checks.
        """
        self._repo = repo
        self._auth = auth
        self.role_check_mode = RoleCheckMode(role_check_mode)

    def can_access_user(self, actor: Actor, target_public_id: str) -> bool:
        """Self-or-admin check for reading a user or changing their password."""
        if actor.public_id == target_public_id:
            return True
        if self.role_check_mode is RoleCheckMode.LEGACY:
            return False
        return actor.role in ADMIN_ROLES

    def requires_current_password(self, actor: Actor) -> bool:
        """Whether a password change by this actor must prove the old password."""
        if self.role_check_mode is RoleCheckMode.LEGACY:
            return True
        return actor.role not in ADMIN_ROLES

    async def list_users(
        self,
        actor: Actor,
        search: str | None = None,
        role: UserRole | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> UserPage:
        """List the actor's company users, newest first.

        Args:
            actor: Caller; scopes the listing to their company.
            search: Case-insensitive substring of name or email.
            role: Only users with this role.
            page: 1-based page number.
            limit: Page size.

        Returns:
            UserPage with the page and pagination counters.
        """
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")

        search = search.strip() if search else None
        users = await self._repo.list_company_users(
            actor.company_public_id,
            search=search or None,
            role=role,
            offset=(page - 1) * limit,
            limit=limit,
        )
        total = await self._repo.count_company_users(
            actor.company_public_id, search=search or None, role=role
        )
        return UserPage(users=users, current=page, pages=math.ceil(total / limit), total=total)

    async def create_user(
        self,
        actor: Actor,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.VIEWER,
        permissions: dict[str, Any] | None = None,
    ) -> User:
        """Create a user in the actor's company.

        Raises:
            ValidationError: Missing name or too-short password.
            NotFoundError: The actor's company is gone.
            ConflictError: The email is already in use.
            QuotaExceededError: The plan's user limit is reached.
        """
        name = name.strip()
        email = normalize_email(email)
        if not name or not email:
            raise ValidationError("Name, email and password are required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        company = await self._repo.get_company_by_public_id(actor.company_public_id)
        if not company:
            raise NotFoundError("Company not found")

        if await self._repo.get_company_user_by_email(company.public_id, email):
            raise ConflictError("A user with this email already exists in the company")
        # Login resolves emails across companies, so they must stay unique
        if await self._repo.get_user_by_email(email):
            raise ConflictError("A user with this email already exists")

        count = await self._repo.count_company_users(company.public_id)
        if count >= company.settings.max_users:
            raise QuotaExceededError(f"Limit of {company.settings.max_users} users reached")

        merged = UserPermissions.for_role(role).model_dump() | (permissions or {})
        user = await self._repo.create_user(
            User(
                company_public_id=company.public_id,
                name=name,
                email=email,
                password_hash=await self._auth.hasher.hash(password),
                role=role,
                permissions=UserPermissions.model_validate(merged),
            )
        )
        logger.info(
            "user_created",
            user_id=user.public_id,
            company_id=company.public_id,
            role=role.value,
            by=actor.public_id,
        )
        return user

    async def get_user(self, actor: Actor, target_public_id: str) -> User:
        """Get a user of the actor's company.

        Raises:
            NotFoundError: No such user in the company.
            ForbiddenError: The actor may not see this user.
        """
        user = await self._get(actor, target_public_id)
        if not self.can_access_user(actor, target_public_id):
            raise ForbiddenError("Not allowed to access this user")
        return user

    async def update_user(
        self,
        actor: Actor,
        target_public_id: str,
        name: str | None = None,
        email: str | None = None,
        role: UserRole | None = None,
        permissions: dict[str, Any] | None = None,
        status: UserStatus | None = None,
    ) -> User:
        """Update profile fields of a user.

        Permissions are merged into the current ones. Moving a user out of
        ``active`` signs them out everywhere.

        Raises:
            NotFoundError: No such user in the company.
            ConflictError: The new email is taken.
        """
        user = await self._get(actor, target_public_id)

        if email is not None:
            email = normalize_email(email)
            if email and email != user.email:
                existing = await self._repo.get_user_by_email(email)
                if existing and existing.public_id != user.public_id:
                    raise ConflictError("A user with this email already exists")
                user.email = email

        if name and name.strip():
            user.name = name.strip()
        if role is not None:
            user.role = role
        if permissions:
            merged = user.permissions.model_dump() | permissions
            user.permissions = UserPermissions.model_validate(merged)

        was_active = user.status is UserStatus.ACTIVE
        if status is not None:
            user.status = status

        user = await self._repo.update_user(user)
        if was_active and user.status is not UserStatus.ACTIVE:
            user = await self._auth.revoke_all_sessions(user)

        logger.info("user_updated", user_id=user.public_id, by=actor.public_id)
        return user

    async def delete_user(self, actor: Actor, target_public_id: str) -> None:
        """Delete a user of the actor's company.

        Raises:
            ValidationError: The actor tried to delete themselves.
            NotFoundError: No such user in the company.
        """
        if actor.public_id == target_public_id:
            raise ValidationError("You cannot delete your own account")

        await self._get(actor, target_public_id)
        await self._repo.delete_user(target_public_id)
        logger.info("user_deleted", user_id=target_public_id, by=actor.public_id)

    async def update_password(
        self,
        actor: Actor,
        target_public_id: str,
        new_password: str,
        current_password: str | None = None,
    ) -> None:
        """Change a user's password and sign them out everywhere.

        Raises:
            ForbiddenError: The actor may not change this password.
            NotFoundError: No such user in the company.
            ValidationError: Wrong current password or too-short new one.
        """
        if not self.can_access_user(actor, target_public_id):
            raise ForbiddenError("Not allowed to change this password")

        user = await self._get(actor, target_public_id)

        if self.requires_current_password(actor):
            if not await self._auth.hasher.compare(current_password or "", user.password_hash):
                raise ValidationError("Current password is incorrect")

        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        user.password_hash = await self._auth.hasher.hash(new_password)
        user = await self._repo.update_user(user)
        await self._auth.revoke_all_sessions(user)
        logger.info("password_changed", user_id=user.public_id, by=actor.public_id)

    async def toggle_status(self, actor: Actor, target_public_id: str) -> User:
        """Flip a user between ``active`` and ``inactive``.

        Raises:
            ValidationError: The actor tried to toggle themselves.
            NotFoundError: No such user in the company.
        """
        if actor.public_id == target_public_id:
            raise ValidationError("You cannot deactivate your own account")

        user = await self._get(actor, target_public_id)
        user.status = (
            UserStatus.INACTIVE if user.status is UserStatus.ACTIVE else UserStatus.ACTIVE
        )
        user = await self._repo.update_user(user)
        if user.status is UserStatus.INACTIVE:
            user = await self._auth.revoke_all_sessions(user)

        logger.info(
            "user_status_toggled",
            user_id=user.public_id,
            status=user.status.value,
            by=actor.public_id,
        )
        return user

    async def _get(self, actor: Actor, target_public_id: str) -> User:
        user = await self._repo.get_company_user(actor.company_public_id, target_public_id)
        if not user:
            raise NotFoundError("User not found")
        return user
