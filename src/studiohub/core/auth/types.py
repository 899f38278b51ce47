"""Auth domain types."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from studiohub.core.auth.tokens import generate_public_id, utcnow


class UserRole(str, Enum):
    """Roles a staff user can hold inside a company."""

    VIEWER = "viewer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


class UserStatus(str, Enum):
    """User account status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class CompanyPlan(str, Enum):
    """Subscription plan tiers."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class CompanyStatus(str, Enum):
    """Company account status."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELED = "canceled"


class BillingStatus(str, Enum):
    """Billing state shown on the plan page."""

    ACTIVE = "active"
    PENDING = "pending"
    CANCELED = "canceled"


class TokenType(str, Enum):
    """Discriminator carried in every signed token."""

    ACCESS = "access"
    REFRESH = "refresh"


class UserPermissions(BaseModel):
    """Feature flags attached to a user."""

    can_view_workouts: bool = True
    can_view_analytics: bool = False
    can_manage_content: bool = False

    @classmethod
    def for_role(cls, role: UserRole) -> "UserPermissions":
        """Default permissions for a role."""
        is_admin = role in ADMIN_ROLES
        return cls(
            can_view_workouts=True,
            can_view_analytics=is_admin,
            can_manage_content=is_admin,
        )

    @classmethod
    def full(cls) -> "UserPermissions":
        """Every permission enabled."""
        return cls(can_view_workouts=True, can_view_analytics=True, can_manage_content=True)


class LockoutState(BaseModel):
    """Failed-login bookkeeping for one user."""

    is_locked: bool = False
    login_attempts: int = 0
    lock_until: datetime | None = None


class DeviceInfo(BaseModel):
    """Client metadata recorded with a session."""

    user_agent: str = "unknown"
    ip: str = "unknown"
    last_used: datetime = Field(default_factory=utcnow)


class SessionEntry(BaseModel):
    """One issued refresh token, embedded in its owning user."""

    session_id: str
    device: DeviceInfo
    expires_at: datetime
    created_at: datetime


class SessionView(BaseModel):
    """Read-only projection of a session for session-management screens."""

    device: DeviceInfo
    last_used: datetime
    created_at: datetime


class CompanySettings(BaseModel):
    """Operational settings of a company."""

    max_users: int = 5
    language: str = "pt-BR"
    timezone: str = "America/Sao_Paulo"


class CompanyTheme(BaseModel):
    """Brand colors."""

    primary_color: str = "#3B82F6"
    secondary_color: str = "#1E40AF"


class CompanyContact(BaseModel):
    """Public contact details."""

    email: str = ""
    phone: str = ""
    address: str = ""


class CompanySocial(BaseModel):
    """Social network handles."""

    instagram: str = ""
    facebook: str = ""
    whatsapp: str = ""


class Company(BaseModel):
    """Company (gym or studio) domain model."""

    public_id: str = Field(default_factory=generate_public_id)
    name: str
    email: str
    password_hash: str
    plan: CompanyPlan = CompanyPlan.FREE
    status: CompanyStatus = CompanyStatus.ACTIVE
    billing_status: BillingStatus = BillingStatus.ACTIVE
    next_billing_date: datetime | None = None
    slogan: str = "Treine com propósito"
    theme: CompanyTheme = Field(default_factory=CompanyTheme)
    contact: CompanyContact = Field(default_factory=CompanyContact)
    social: CompanySocial = Field(default_factory=CompanySocial)
    settings: CompanySettings = Field(default_factory=CompanySettings)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class User(BaseModel):
    """Staff user domain model.

    ``sessions`` is only ever written through the repository's conditional
    session write; ``session_version`` is the value that write compares.
    """

    public_id: str = Field(default_factory=generate_public_id)
    company_public_id: str
    name: str
    email: str
    password_hash: str
    role: UserRole = UserRole.VIEWER
    permissions: UserPermissions = Field(default_factory=UserPermissions)
    lockout: LockoutState = Field(default_factory=LockoutState)
    last_login: datetime | None = None
    status: UserStatus = UserStatus.ACTIVE
    sessions: list[SessionEntry] = Field(default_factory=list)
    session_version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_admin(self) -> bool:
        """Whether the user holds an admin role."""
        return self.role in ADMIN_ROLES


class AccessClaims(BaseModel):
    """Claims of a verified access token."""

    sub: str  # user public id
    company_id: str
    role: UserRole
    type: TokenType
    jti: str
    exp: int
    iat: int


class RefreshClaims(BaseModel):
    """Claims of a verified refresh token."""

    sub: str  # user public id
    token_id: str  # session id
    type: TokenType
    exp: int
    iat: int
