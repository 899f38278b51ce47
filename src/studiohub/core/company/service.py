"""Company branding, contact settings and subscription plan."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from studiohub.core.auth.repository import AuthRepository
from studiohub.core.auth.types import (
    BillingStatus,
    Company,
    CompanyContact,
    CompanyPlan,
    CompanySocial,
)
from studiohub.core.exceptions import NotFoundError, ValidationError

logger = structlog.get_logger()

HEX_COLOR = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")

PLAN_MAX_USERS: dict[CompanyPlan, int] = {
    CompanyPlan.FREE: 5,
    CompanyPlan.PRO: 50,
    CompanyPlan.ENTERPRISE: 9999,
}

PLAN_FEATURES: dict[CompanyPlan, list[str]] = {
    CompanyPlan.FREE: ["Até 50 alunos", "1 administrador", "Suporte básico"],
    CompanyPlan.PRO: [
        "Alunos ilimitados",
        "3 administradores",
        "Suporte prioritário",
        "Relatórios avançados",
    ],
    CompanyPlan.ENTERPRISE: [
        "Alunos ilimitados",
        "Administradores ilimitados",
        "Suporte 24/7",
        "API personalizada",
        "White-label",
    ],
}


def is_valid_color(value: str) -> bool:
    """Check for ``#RGB`` or ``#RRGGBB``."""
    return bool(HEX_COLOR.match(value))


@dataclass
class PlanInfo:
    """Plan summary shown on the billing page."""

    plan: CompanyPlan
    billing_status: BillingStatus
    next_billing_date: datetime | None
    max_users: int
    features: list[str]


class CompanySettingsService:
    """Reads and updates a company's own settings."""

    def __init__(self, repo: AuthRepository) -> None:
        """Initialize with the company repository."""
        self._repo = repo

    async def get_settings(self, company_public_id: str) -> Company:
        """Get the company.

        Raises:
            NotFoundError: No such company.
        """
        company = await self._repo.get_company_by_public_id(company_public_id)
        if not company:
            raise NotFoundError("Company not found")
        return company

    async def update_settings(
        self,
        company_public_id: str,
        name: str | None = None,
        slogan: str | None = None,
        primary_color: str | None = None,
        secondary_color: str | None = None,
        language: str | None = None,
        contact: dict[str, Any] | None = None,
        social: dict[str, Any] | None = None,
    ) -> Company:
        """Update branding and contact details.

        Contact and social blocks are replaced as a whole; fields left out
        become empty.

        Raises:
            ValidationError: Name shorter than 2 characters or bad color.
            NotFoundError: No such company.
        """
        if name is not None and len(name.strip()) < 2:
            raise ValidationError("Name must be at least 2 characters")
        if primary_color and not is_valid_color(primary_color):
            raise ValidationError("Invalid primary color")
        if secondary_color and not is_valid_color(secondary_color):
            raise ValidationError("Invalid secondary color")

        company = await self.get_settings(company_public_id)

        if name is not None:
            company.name = name.strip()
        if slogan is not None:
            company.slogan = slogan.strip()
        if language is not None:
            company.settings.language = language
        if primary_color:
            company.theme.primary_color = primary_color
        if secondary_color:
            company.theme.secondary_color = secondary_color

        company.contact = CompanyContact.model_validate(
            {k: v or "" for k, v in (contact or {}).items() if k in CompanyContact.model_fields}
        )
        company.social = CompanySocial.model_validate(
            {k: v or "" for k, v in (social or {}).items() if k in CompanySocial.model_fields}
        )

        company = await self._repo.update_company(company)
        logger.info("company_settings_updated", company_id=company.public_id)
        return company

    async def get_plan(self, company_public_id: str) -> PlanInfo:
        """Summarize the company's plan."""
        company = await self.get_settings(company_public_id)
        return PlanInfo(
            plan=company.plan,
            billing_status=company.billing_status,
            next_billing_date=company.next_billing_date,
            max_users=company.settings.max_users,
            features=list(PLAN_FEATURES[company.plan]),
        )

    async def update_plan(self, company_public_id: str, plan: str) -> Company:
        """Switch plan and apply its user limit.

        Raises:
            ValidationError: Unknown plan name.
            NotFoundError: No such company.
        """
        try:
            new_plan = CompanyPlan(plan)
        except ValueError:
            raise ValidationError("Invalid plan") from None

        company = await self.get_settings(company_public_id)
        company.plan = new_plan
        company.settings.max_users = PLAN_MAX_USERS[new_plan]

        company = await self._repo.update_company(company)
        logger.info("company_plan_updated", company_id=company.public_id, plan=new_plan.value)
        return company
