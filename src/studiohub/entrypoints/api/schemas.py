"""Response envelope and public projections of domain models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from studiohub.core.auth.types import (
    Company,
    CompanySettings,
    User,
    UserPermissions,
    UserRole,
    UserStatus,
)


def envelope(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Wrap a payload in the ``{"success": true, ...}`` envelope."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


class UserSummary(BaseModel):
    """User fields safe to return to clients."""

    public_id: str
    name: str
    email: str
    role: UserRole
    permissions: UserPermissions
    status: UserStatus
    last_login: datetime | None = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserSummary:
        """Project a user, dropping hashes, lockout state and sessions."""
        return cls(
            public_id=user.public_id,
            name=user.name,
            email=user.email,
            role=user.role,
            permissions=user.permissions,
            status=user.status,
            last_login=user.last_login,
            created_at=user.created_at,
        )


class CompanySummary(BaseModel):
    """Company fields returned alongside the signed-in user."""

    public_id: str
    name: str
    email: str
    plan: str
    settings: CompanySettings

    @classmethod
    def from_company(cls, company: Company) -> CompanySummary:
        """Project a company, dropping its password hash."""
        return cls(
            public_id=company.public_id,
            name=company.name,
            email=company.email,
            plan=company.plan.value,
            settings=company.settings,
        )


def user_payload(user: User) -> dict[str, Any]:
    """JSON-ready user projection."""
    return UserSummary.from_user(user).model_dump(mode="json")


def company_payload(company: Company) -> dict[str, Any]:
    """JSON-ready company projection."""
    return CompanySummary.from_company(company).model_dump(mode="json")
