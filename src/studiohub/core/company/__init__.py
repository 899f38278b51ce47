"""Company settings and plan management."""

from studiohub.core.company.service import CompanySettingsService, PlanInfo

__all__ = ["CompanySettingsService", "PlanInfo"]
