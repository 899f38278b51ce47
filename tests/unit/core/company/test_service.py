"""Tests for company settings and plan service."""

import pytest

from studiohub.core.auth.service import AuthService
from studiohub.core.auth.types import BillingStatus, CompanyPlan
from studiohub.core.company.service import (
    PLAN_FEATURES,
    CompanySettingsService,
    is_valid_color,
)
from studiohub.core.exceptions import NotFoundError, ValidationError

PASSWORD = "s3cret-pass"  # pragma: allowlist secret


class TestIsValidColor:
    """Test hex color validation."""

    @pytest.mark.parametrize("value", ["#fff", "#3B82F6", "#1e40af"])
    def test_valid(self, value: str) -> None:
        """Short and long hex forms are accepted."""
        assert is_valid_color(value) is True

    @pytest.mark.parametrize("value", ["fff", "#ffff", "#GGGGGG", "blue", ""])
    def test_invalid(self, value: str) -> None:
        """Anything else is refused."""
        assert is_valid_color(value) is False


class TestSettings:
    """Test reading and updating settings."""

    @pytest.mark.asyncio
    async def test_defaults(
        self, auth_service: AuthService, company_service: CompanySettingsService
    ) -> None:
        """A new company starts on the free plan with default branding."""
        result = await auth_service.register("Acme Gym", "a@acme.test", PASSWORD)

        company = await company_service.get_settings(result.company.public_id)

        assert company.name == "Acme Gym"
        assert company.plan == CompanyPlan.FREE
        assert company.settings.max_users == 5
        assert company.theme.primary_color == "#3B82F6"

    @pytest.mark.asyncio
    async def test_unknown_company(self, company_service: CompanySettingsService) -> None:
        """Should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await company_service.get_settings("missing")

    @pytest.mark.asyncio
    async def test_update(
        self, auth_service: AuthService, company_service: CompanySettingsService
    ) -> None:
        """Branding, language and contact details are saved."""
        result = await auth_service.register("Acme Gym", "a@acme.test", PASSWORD)

        company = await company_service.update_settings(
            result.company.public_id,
            name=" Acme Fitness ",
            slogan="Move more",
            primary_color="#000",
            language="en-US",
            contact={"phone": "555-0100"},
            social={"instagram": "@acme"},
        )

        assert company.name == "Acme Fitness"
        assert company.slogan == "Move more"
        assert company.theme.primary_color == "#000"
        assert company.theme.secondary_color == "#1E40AF"
        assert company.settings.language == "en-US"
        assert company.contact.phone == "555-0100"
        assert company.social.instagram == "@acme"

    @pytest.mark.asyncio
    async def test_contact_is_replaced_wholesale(
        self, auth_service: AuthService, company_service: CompanySettingsService
    ) -> None:
        """Fields missing from a later update are cleared."""
        result = await auth_service.register("Acme Gym", "a@acme.test", PASSWORD)
        company_id = result.company.public_id
        await company_service.update_settings(
            company_id, contact={"phone": "555-0100", "address": "Main St"}
        )

        company = await company_service.update_settings(company_id, contact={"phone": "555-0199"})

        assert company.contact.phone == "555-0199"
        assert company.contact.address == ""

    @pytest.mark.asyncio
    async def test_short_name(
        self, auth_service: AuthService, company_service: CompanySettingsService
    ) -> None:
        """Names under 2 characters are refused."""
        result = await auth_service.register("Acme Gym", "a@acme.test", PASSWORD)

        with pytest.raises(ValidationError):
            await company_service.update_settings(result.company.public_id, name="A")

    @pytest.mark.asyncio
    async def test_bad_color(
        self, auth_service: AuthService, company_service: CompanySettingsService
    ) -> None:
        """Invalid hex colors are refused and nothing is saved."""
        result = await auth_service.register("Acme Gym", "a@acme.test", PASSWORD)

        with pytest.raises(ValidationError) as exc_info:
            await company_service.update_settings(
                result.company.public_id, name="Renamed", secondary_color="navy"
            )

        assert exc_info.value.status_code == 400
        company = await company_service.get_settings(result.company.public_id)
        assert company.name == "Acme Gym"


class TestPlan:
    """Test plan summary and switching."""

    @pytest.mark.asyncio
    async def test_plan_info(
        self, auth_service: AuthService, company_service: CompanySettingsService
    ) -> None:
        """Should report plan, billing state, limit and features."""
        result = await auth_service.register("Acme Gym", "a@acme.test", PASSWORD)

        info = await company_service.get_plan(result.company.public_id)

        assert info.plan == CompanyPlan.FREE
        assert info.billing_status == BillingStatus.ACTIVE
        assert info.max_users == 5
        assert info.features == PLAN_FEATURES[CompanyPlan.FREE]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("plan", "max_users"),
        [("free", 5), ("pro", 50), ("enterprise", 9999)],
    )
    async def test_update_plan_sets_limit(
        self,
        auth_service: AuthService,
        company_service: CompanySettingsService,
        plan: str,
        max_users: int,
    ) -> None:
        """Each plan carries its own user limit."""
        result = await auth_service.register("Acme Gym", "a@acme.test", PASSWORD)

        company = await company_service.update_plan(result.company.public_id, plan)

        assert company.plan == CompanyPlan(plan)
        assert company.settings.max_users == max_users

    @pytest.mark.asyncio
    async def test_invalid_plan(
        self, auth_service: AuthService, company_service: CompanySettingsService
    ) -> None:
        """Unknown plan names are refused."""
        result = await auth_service.register("Acme Gym", "a@acme.test", PASSWORD)

        with pytest.raises(ValidationError, match="Invalid plan"):
            await company_service.update_plan(result.company.public_id, "platinum")
