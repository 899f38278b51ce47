"""Auth service for registration, login, token rotation and sessions."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

import structlog

from studiohub.core.auth.jwt import TokenError, TokenService
from studiohub.core.auth.lockout import LockoutGuard
from studiohub.core.auth.password import PasswordHasher
from studiohub.core.auth.repository import AuthRepository
from studiohub.core.auth.sessions import MAX_SESSIONS, SessionRegistry
from studiohub.core.auth.tokens import utcnow
from studiohub.core.auth.types import (
    AccessClaims,
    Company,
    DeviceInfo,
    SessionView,
    TokenType,
    User,
    UserPermissions,
    UserRole,
    UserStatus,
)
from studiohub.core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    DataIntegrityError,
    ForbiddenError,
    NotFoundError,
)

logger = structlog.get_logger()

T = TypeVar("T")

# Conditional session writes retried after losing a race
MAX_SESSION_WRITE_ATTEMPTS = 3
DEFAULT_ADMIN_NAME = "Administrator"


class EmailTakenError(ConflictError):
    """Registration email already in use."""

    code = "EMAIL_TAKEN"
    default_message = "Email already registered"


class InvalidCredentialsError(AuthenticationError):
    """Unknown email or wrong password. Never says which."""

    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class AccountDisabledError(ForbiddenError):
    """Correct credentials, but the user is not active."""

    code = "ACCOUNT_DISABLED"
    default_message = "User account is disabled"


class MissingTokenError(AuthenticationError):
    """No token was presented."""

    code = "MISSING_TOKEN"
    default_message = "Authentication token missing"


class InvalidOrExpiredTokenError(AuthenticationError):
    """Refresh token failed signature, expiry or type checks."""

    code = "INVALID_OR_EXPIRED"
    default_message = "Refresh token invalid or expired"


class RevokedSessionError(AuthenticationError):
    """Refresh token verifies but its session is gone."""

    code = "REVOKED_SESSION"
    default_message = "Session revoked"


class UserNotFoundError(AuthenticationError):
    """Token refers to a user that no longer exists or may not sign in."""

    code = "USER_NOT_FOUND"
    default_message = "User not found"


class SessionConflictError(ConflictError):
    """Session list kept changing under us; the client should retry."""

    code = "SESSION_CONFLICT"
    default_message = "Concurrent session update, please retry"


@dataclass
class AuthResult:
    """Tokens issued for a user, with the entities they were issued for."""

    access_token: str
    refresh_token: str
    user: User
    company: Company


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookups."""
    return email.strip().lower()


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        repo: AuthRepository,
        tokens: TokenService,
        hasher: PasswordHasher | None = None,
        guard: LockoutGuard | None = None,
        clock: Callable[[], datetime] = utcnow,
        max_sessions: int = MAX_SESSIONS,
    ) -> None:
        """Initialize the service.

        Args:
            repo: Company and user persistence.
            tokens: Token minting and verification.
            hasher: Password hashing; default work factor when omitted.
            guard: Lockout policy; defaults to 5 attempts / 30 minutes.
            clock: Source of "now", injectable for tests.
            max_sessions: Cap on concurrent sessions per user.
        """
        self._repo = repo
        self._tokens = tokens
        self._hasher = hasher or PasswordHasher()
        self._guard = guard or LockoutGuard()
        self._clock = clock
        self._max_sessions = max_sessions
        self._session_ttl = tokens.config.refresh_ttl

    @property
    def tokens(self) -> TokenService:
        """Token service, whose config sets cookie lifetimes."""
        return self._tokens

    @property
    def hasher(self) -> PasswordHasher:
        """Password hasher shared with other services."""
        return self._hasher

    @property
    def guard(self) -> LockoutGuard:
        """Lockout policy in force."""
        return self._guard

    def now(self) -> datetime:
        """Current time according to the injected clock."""
        return self._clock()

    async def register(
        self,
        company_name: str,
        email: str,
        password: str,
        device: DeviceInfo | None = None,
        admin_name: str = DEFAULT_ADMIN_NAME,
    ) -> AuthResult:
        """Create a company and its super-admin user, and sign them in.

        Args:
            company_name: Display name of the company.
            email: Login email for both the company and its first user.
            password: Plain text password.
            device: Client metadata for the first session.
            admin_name: Name of the first user.

        Returns:
            AuthResult with tokens for the new super admin.

        Raises:
            EmailTakenError: The email already belongs to a company or user.
        """
        email = normalize_email(email)

        if await self._repo.get_company_by_email(email):
            raise EmailTakenError()
        # Login looks users up by email across companies
        if await self._repo.get_user_by_email(email):
            raise EmailTakenError()

        password_hash = await self._hasher.hash(password)

        company = await self._repo.create_company(
            Company(name=company_name.strip(), email=email, password_hash=password_hash)
        )

        user = await self._repo.create_user(
            User(
                company_public_id=company.public_id,
                name=admin_name,
                email=email,
                password_hash=password_hash,
                role=UserRole.SUPER_ADMIN,
                permissions=UserPermissions.full(),
            )
        )

        logger.info(
            "company_registered",
            company_id=company.public_id,
            user_id=user.public_id,
        )
        return await self._issue(user, company, device or DeviceInfo())

    async def login(
        self,
        email: str,
        password: str,
        device: DeviceInfo | None = None,
    ) -> AuthResult:
        """Authenticate user and return tokens.

        The lock is checked before the password, so a correct password
        during an active lock is still refused.

        Args:
            email: User's email address.
            password: Plain text password.
            device: Client metadata for the new session.

        Returns:
            AuthResult with fresh tokens.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password.
            AccountLockedError: Lock in force, or this failure triggered it.
            AccountDisabledError: Password correct but user not active.
        """
        email = normalize_email(email)
        now = self.now()

        user = await self._repo.get_user_by_email(email)
        if not user:
            logger.info("login_failed_unknown_email", email=email)
            raise InvalidCredentialsError()

        if self._guard.is_blocked(user.lockout, now):
            logger.warning("login_rejected_account_locked", user_id=user.public_id)
            raise AccountLockedError()

        if not await self._hasher.compare(password, user.password_hash):
            lockout = await self._repo.record_failed_login(
                user.public_id,
                now,
                max_attempts=self._guard.max_attempts,
                lock_duration=self._guard.lock_duration,
            )
            if lockout is None:
                raise InvalidCredentialsError()
            if self._guard.is_blocked(lockout, now):
                logger.warning(
                    "account_locked",
                    user_id=user.public_id,
                    attempts=lockout.login_attempts,
                    lock_until=str(lockout.lock_until),
                )
                raise AccountLockedError()
            logger.info(
                "login_failed_bad_password",
                user_id=user.public_id,
                attempts=lockout.login_attempts,
            )
            raise InvalidCredentialsError()

        # Status is checked on the row returned by this write, not the first read
        stored = await self._repo.record_successful_login(user.public_id, now)
        if stored is None:
            raise InvalidCredentialsError()
        user = stored

        if user.status is not UserStatus.ACTIVE:
            logger.info("login_rejected_inactive", user_id=user.public_id, status=user.status.value)
            raise AccountDisabledError()

        company = await self._company_of(user)

        logger.info("login_succeeded", user_id=user.public_id, role=user.role.value)
        return await self._issue(user, company, device or DeviceInfo())

    async def refresh(self, refresh_token: str | None) -> AuthResult:
        """Exchange a refresh token for a new access token and a rotated refresh token.

        Args:
            refresh_token: Signed refresh token from the client.

        Returns:
            AuthResult with the new pair.

        Raises:
            MissingTokenError: No token presented.
            InvalidOrExpiredTokenError: Bad signature, expired, or wrong type.
            UserNotFoundError: Token's user no longer exists.
            RevokedSessionError: Session already rotated, revoked or expired.
        """
        if not refresh_token:
            raise MissingTokenError("Refresh token missing")

        try:
            claims = self._tokens.verify(refresh_token, TokenType.REFRESH)
        except TokenError as e:
            logger.info("refresh_token_rejected", reason=e.code)
            raise InvalidOrExpiredTokenError() from None

        user = await self._repo.get_user_by_public_id(claims.sub)
        if not user:
            raise UserNotFoundError()

        company = await self._company_of(user)

        user, new_refresh_token = await self.rotate(user, claims.token_id)
        access_token = self._tokens.mint_access_token(user, company)

        return AuthResult(
            access_token=access_token,
            refresh_token=new_refresh_token,
            user=user,
            company=company,
        )

    async def rotate(self, user: User, old_session_id: str) -> tuple[User, str]:
        """Replace a session with a new one in a single conditional write.

        Args:
            user: Owner of the session, as last read.
            old_session_id: Session id carried by the presented refresh token.

        Returns:
            Tuple of (updated user, new signed refresh token).

        Raises:
            RevokedSessionError: The old session is not active any more,
                including when a concurrent rotation won the race.
        """

        def _rotate(registry: SessionRegistry, owner: User, now: datetime) -> str:
            registry.prune_expired(now)
            current = registry.find_active(old_session_id, now)
            if current is None:
                logger.warning("refresh_replay_rejected", user_id=owner.public_id)
                raise RevokedSessionError()
            registry.revoke(old_session_id)
            session_id, token = self._tokens.mint_refresh_pair(owner)
            registry.add(session_id, current.device, now)
            return token

        user, token = await self._mutate_sessions(user, _rotate)
        logger.info("session_rotated", user_id=user.public_id)
        return user, token

    async def logout(self, user_public_id: str, refresh_token: str | None) -> None:
        """End the caller's session.

        With a refresh token, only its session is removed. Without one,
        every session of the user is removed.

        Args:
            user_public_id: Authenticated caller.
            refresh_token: Refresh token presented alongside, if any.
        """
        user = await self._repo.get_user_by_public_id(user_public_id)
        if not user:
            return

        if not refresh_token:
            await self.revoke_all_sessions(user)
            logger.info("logout_all_sessions", user_id=user.public_id)
            return

        try:
            claims = self._tokens.verify(refresh_token, TokenType.REFRESH)
        except TokenError as e:
            logger.info("logout_refresh_token_ignored", user_id=user.public_id, reason=e.code)
            return

        if claims.sub != user.public_id:
            logger.warning("logout_refresh_token_foreign", user_id=user.public_id)
            return

        await self._mutate_sessions(user, lambda registry, *_: registry.revoke(claims.token_id))
        logger.info("logout", user_id=user.public_id)

    async def whoami(self, user_public_id: str) -> tuple[User, Company]:
        """Resolve the caller and their company.

        Raises:
            NotFoundError: The user no longer exists.
            DataIntegrityError: The user's company is missing.
        """
        user = await self._repo.get_user_by_public_id(user_public_id)
        if not user:
            raise NotFoundError("User not found")
        company = await self._company_of(user)
        return user, company

    async def list_sessions(self, user_public_id: str) -> list[SessionView]:
        """Prune expired sessions and list the rest.

        Raises:
            UserNotFoundError: The user no longer exists.
        """
        user = await self._repo.get_user_by_public_id(user_public_id)
        if not user:
            raise UserNotFoundError()

        now = self.now()
        registry = self._registry(user)
        if registry.prune_expired(now):
            user, _ = await self._mutate_sessions(
                user, lambda registry, _owner, now: registry.prune_expired(now)
            )
            registry = self._registry(user)
        return registry.list()

    async def revoke_all_sessions(self, user: User) -> User:
        """Remove every session of a user (password change, deactivation)."""
        user, removed = await self._mutate_sessions(user, lambda registry, *_: registry.revoke_all())
        logger.info("sessions_revoked", user_id=user.public_id, count=removed)
        return user

    async def authenticate(self, access_token: str | None) -> User:
        """Resolve the user behind an access token, failing closed.

        Args:
            access_token: Token from the cookie or Authorization header.

        Returns:
            The active, unlocked user.

        Raises:
            MissingTokenError: No token.
            TokenError: Invalid signature, expired, or wrong type.
            UserNotFoundError: User gone, locked or not active.
        """
        if not access_token:
            raise MissingTokenError()

        claims = self._tokens.verify(access_token, TokenType.ACCESS)
        assert isinstance(claims, AccessClaims)

        user = await self._repo.get_user_by_public_id(claims.sub)
        if not user:
            raise UserNotFoundError("User not found or locked")
        if self._guard.is_blocked(user.lockout, self.now()):
            raise UserNotFoundError("User not found or locked")
        if user.status is not UserStatus.ACTIVE:
            raise UserNotFoundError("User not found or locked")
        return user

    async def _issue(self, user: User, company: Company, device: DeviceInfo) -> AuthResult:
        access_token = self._tokens.mint_access_token(user, company)

        def _add(registry: SessionRegistry, owner: User, now: datetime) -> str:
            session_id, token = self._tokens.mint_refresh_pair(owner)
            registry.add(session_id, device, now)
            return token

        user, refresh_token = await self._mutate_sessions(user, _add)
        return AuthResult(
            access_token=access_token,
            refresh_token=refresh_token,
            user=user,
            company=company,
        )

    async def _company_of(self, user: User) -> Company:
        company = await self._repo.get_company_by_public_id(user.company_public_id)
        if not company:
            logger.error(
                "user_company_missing",
                user_id=user.public_id,
                company_id=user.company_public_id,
            )
            raise DataIntegrityError(f"Company {user.company_public_id} missing for user")
        return company

    def _registry(self, user: User) -> SessionRegistry:
        return SessionRegistry(user.sessions, max_sessions=self._max_sessions, ttl=self._session_ttl)

    async def _mutate_sessions(
        self,
        user: User,
        mutate: Callable[[SessionRegistry, User, datetime], T],
    ) -> tuple[User, T]:
        """Apply a mutation to a user's sessions and persist it conditionally.

        On a lost compare-and-swap the user is re-read and the mutation is
        applied again to the fresh list.
        """
        for _ in range(MAX_SESSION_WRITE_ATTEMPTS):
            registry = self._registry(user)
            result = mutate(registry, user, self.now())
            written = await self._repo.compare_and_set_sessions(
                user.public_id, user.session_version, registry.entries
            )
            if written:
                user.sessions = registry.entries
                user.session_version += 1
                return user, result

            logger.info("session_write_conflict", user_id=user.public_id)
            fresh = await self._repo.get_user_by_public_id(user.public_id)
            if not fresh:
                raise UserNotFoundError()
            user = fresh

        raise SessionConflictError()
