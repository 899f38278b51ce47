"""Company settings and plan routes."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from studiohub.core.auth.types import Company
from studiohub.core.company.service import CompanySettingsService
from studiohub.entrypoints.api.deps import get_company_service
from studiohub.entrypoints.api.middleware.jwt_auth import RequireUser
from studiohub.entrypoints.api.schemas import envelope

router = APIRouter(prefix="/company", tags=["company"])

CompanyServiceDep = Annotated[CompanySettingsService, Depends(get_company_service)]


class ContactRequest(BaseModel):
    """Public contact details."""

    email: str | None = None
    phone: str | None = None
    address: str | None = None


class SocialRequest(BaseModel):
    """Social network handles."""

    instagram: str | None = None
    facebook: str | None = None
    whatsapp: str | None = None


class UpdateSettingsRequest(BaseModel):
    """Request to update company settings."""

    name: str | None = None
    slogan: str | None = None
    primary_color: str | None = None
    secondary_color: str | None = None
    language: str | None = None
    contact: ContactRequest | None = None
    social: SocialRequest | None = None


class UpdatePlanRequest(BaseModel):
    """Request to switch plan."""

    plan: str


def _settings_payload(company: Company) -> dict[str, Any]:
    return {
        "name": company.name,
        "slogan": company.slogan,
        "primary_color": company.theme.primary_color,
        "secondary_color": company.theme.secondary_color,
        "plan": company.plan.value,
        "language": company.settings.language,
        "contact": company.contact.model_dump(),
        "social": company.social.model_dump(),
    }


@router.get("/settings")
async def get_settings(
    auth: RequireUser,
    service: CompanyServiceDep,
) -> dict[str, Any]:
    """Get branding and contact settings of the caller's company."""
    company = await service.get_settings(auth.company_public_id)
    return envelope(_settings_payload(company))


@router.put("/settings")
async def update_settings(
    body: UpdateSettingsRequest,
    auth: RequireUser,
    service: CompanyServiceDep,
) -> dict[str, Any]:
    """Update branding and contact settings of the caller's company."""
    company = await service.update_settings(
        auth.company_public_id,
        name=body.name,
        slogan=body.slogan,
        primary_color=body.primary_color,
        secondary_color=body.secondary_color,
        language=body.language,
        contact=body.contact.model_dump() if body.contact else None,
        social=body.social.model_dump() if body.social else None,
    )
    return envelope(_settings_payload(company), message="Settings updated")


@router.get("/plan")
async def get_plan(
    auth: RequireUser,
    service: CompanyServiceDep,
) -> dict[str, Any]:
    """Get the plan, billing status, user limit and plan features."""
    info = await service.get_plan(auth.company_public_id)
    return envelope(
        {
            "current_plan": info.plan.value,
            "status": info.billing_status.value,
            "next_billing_date": (
                info.next_billing_date.isoformat() if info.next_billing_date else None
            ),
            "max_users": info.max_users,
            "features": info.features,
        }
    )


@router.put("/plan")
async def update_plan(
    body: UpdatePlanRequest,
    auth: RequireUser,
    service: CompanyServiceDep,
) -> dict[str, Any]:
    """Switch plan; the user limit follows the plan."""
    company = await service.update_plan(auth.company_public_id, body.plan)
    return envelope(
        {"plan": company.plan.value, "max_users": company.settings.max_users},
        message=f"Plan updated to {company.plan.value}",
    )
