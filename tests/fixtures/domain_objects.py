"""Domain object fixtures for testing."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from studiohub.core.auth.password import hash_password
from studiohub.core.auth.types import (
    Company,
    DeviceInfo,
    User,
    UserPermissions,
    UserRole,
)

SAMPLE_PASSWORD = "correct-horse"  # pragma: allowlist secret


@pytest.fixture
def sample_company() -> Company:
    """Return a sample company."""
    return Company(
        public_id="c0ffee00c0ffee00c0ffee00c0ffee00",
        name="Acme Fitness",
        email="owner@acme.test",
        password_hash=hash_password(SAMPLE_PASSWORD, rounds=4),
    )


@pytest.fixture
def sample_user(sample_company: Company) -> User:
    """Return a super admin of the sample company."""
    return User(
        public_id="5eed00005eed00005eed00005eed0000",
        company_public_id=sample_company.public_id,
        name="Owner",
        email="owner@acme.test",
        password_hash=sample_company.password_hash,
        role=UserRole.SUPER_ADMIN,
        permissions=UserPermissions.full(),
        created_at=datetime(2024, 1, 15, tzinfo=UTC),
        updated_at=datetime(2024, 1, 15, tzinfo=UTC),
    )


@pytest.fixture
def sample_device() -> DeviceInfo:
    """Return sample client metadata."""
    return DeviceInfo(user_agent="pytest-browser/1.0", ip="10.0.0.7")
