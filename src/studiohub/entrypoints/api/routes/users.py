"""User management routes."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from studiohub.core.auth.types import UserRole, UserStatus
from studiohub.core.users.service import UserManagementService
from studiohub.entrypoints.api.deps import get_user_service
from studiohub.entrypoints.api.middleware.jwt_auth import RequireAdmin, RequireUser
from studiohub.entrypoints.api.routes.auth import EMAIL_PATTERN
from studiohub.entrypoints.api.schemas import envelope, user_payload

router = APIRouter(prefix="/users", tags=["users"])

# Annotated types for dependency injection
UserServiceDep = Annotated[UserManagementService, Depends(get_user_service)]


class PermissionsUpdate(BaseModel):
    """Partial permission flags; unset fields keep their current value."""

    can_view_workouts: bool | None = None
    can_view_analytics: bool | None = None
    can_manage_content: bool | None = None

    def as_overrides(self) -> dict[str, bool]:
        """Only the flags the client actually sent."""
        return self.model_dump(exclude_none=True)


class CreateUserRequest(BaseModel):
    """Request to create a user."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str
    role: UserRole = UserRole.VIEWER
    permissions: PermissionsUpdate | None = None


class UpdateUserRequest(BaseModel):
    """Request to update a user."""

    name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, pattern=EMAIL_PATTERN)
    role: UserRole | None = None
    permissions: PermissionsUpdate | None = None
    status: UserStatus | None = None


class UpdatePasswordRequest(BaseModel):
    """Request to change a password."""

    current_password: str | None = None
    new_password: str


@router.get("")
async def list_users(
    auth: RequireAdmin,
    service: UserServiceDep,
    search: str | None = None,
    role: UserRole | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict[str, Any]:
    """List users of the caller's company, newest first."""
    result = await service.list_users(auth.actor, search=search, role=role, page=page, limit=limit)
    return envelope(
        {
            "users": [user_payload(u) for u in result.users],
            "pagination": {
                "current": result.current,
                "pages": result.pages,
                "total": result.total,
            },
        }
    )


@router.post("", status_code=201)
async def create_user(
    body: CreateUserRequest,
    auth: RequireAdmin,
    service: UserServiceDep,
) -> dict[str, Any]:
    """Create a user in the caller's company."""
    user = await service.create_user(
        auth.actor,
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role,
        permissions=body.permissions.as_overrides() if body.permissions else None,
    )
    return envelope({"user": user_payload(user)}, message="User created")


@router.get("/{public_id}")
async def get_user(
    public_id: str,
    auth: RequireUser,
    service: UserServiceDep,
) -> dict[str, Any]:
    """Get a user. Admins see anyone in their company; others only themselves."""
    user = await service.get_user(auth.actor, public_id)
    return envelope({"user": user_payload(user)})


@router.put("/{public_id}")
async def update_user(
    public_id: str,
    body: UpdateUserRequest,
    auth: RequireAdmin,
    service: UserServiceDep,
) -> dict[str, Any]:
    """Update a user's profile, role, permissions or status."""
    user = await service.update_user(
        auth.actor,
        public_id,
        name=body.name,
        email=body.email,
        role=body.role,
        permissions=body.permissions.as_overrides() if body.permissions else None,
        status=body.status,
    )
    return envelope({"user": user_payload(user)}, message="User updated")


@router.delete("/{public_id}")
async def delete_user(
    public_id: str,
    auth: RequireAdmin,
    service: UserServiceDep,
) -> dict[str, Any]:
    """Delete a user of the caller's company."""
    await service.delete_user(auth.actor, public_id)
    return envelope(message="User deleted")


@router.put("/{public_id}/password")
async def update_password(
    public_id: str,
    body: UpdatePasswordRequest,
    auth: RequireUser,
    service: UserServiceDep,
) -> dict[str, Any]:
    """Change a password; every session of that user is revoked."""
    await service.update_password(
        auth.actor,
        public_id,
        new_password=body.new_password,
        current_password=body.current_password,
    )
    return envelope(message="Password updated")


@router.patch("/{public_id}/toggle-status")
async def toggle_status(
    public_id: str,
    auth: RequireAdmin,
    service: UserServiceDep,
) -> dict[str, Any]:
    """Activate or deactivate a user; deactivation revokes their sessions."""
    user = await service.toggle_status(auth.actor, public_id)
    message = "User activated" if user.status is UserStatus.ACTIVE else "User deactivated"
    return envelope({"status": user.status.value}, message=message)
