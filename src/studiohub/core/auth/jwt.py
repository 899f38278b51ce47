"""JWT token creation and validation."""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import jwt

from studiohub.core.auth.tokens import generate_session_id, utcnow
from studiohub.core.auth.types import (
    AccessClaims,
    Company,
    RefreshClaims,
    TokenType,
    User,
)
from studiohub.core.exceptions import AuthenticationError

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 15
REFRESH_TOKEN_EXPIRE_DAYS = 7


class TokenError(AuthenticationError):
    """Raised when token validation fails."""

    code = "INVALID_TOKEN"
    default_message = "Invalid token"


class InvalidSignatureError(TokenError):
    """The token is malformed or its signature does not verify."""

    code = "INVALID_SIGNATURE"
    default_message = "Invalid token"


class TokenExpiredError(TokenError):
    """The token verified but its ``exp`` has passed."""

    code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


class WrongTokenTypeError(TokenError):
    """A valid token of the other class was presented."""

    code = "WRONG_TOKEN_TYPE"
    default_message = "Invalid token type"


@dataclass(frozen=True)
class TokenConfig:
    """Signing configuration, injected into TokenService.

    Access and refresh tokens are signed with separate secrets, and a
    token of one class never verifies as the other.
    """

    access_secret: str
    refresh_secret: str
    algorithm: str = ALGORITHM
    access_ttl: timedelta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    refresh_ttl: timedelta = timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)

    def __post_init__(self) -> None:
        if not self.access_secret or not self.refresh_secret:
            raise ValueError("Both access and refresh signing secrets are required")
        if self.access_secret == self.refresh_secret:
            raise ValueError("Access and refresh signing secrets must differ")


class TokenService:
    """Mints and verifies access and refresh tokens."""

    def __init__(self, config: TokenConfig, clock: Callable[[], datetime] = utcnow) -> None:
        """Initialize with signing configuration.

        Args:
            config: Secrets, algorithm and lifetimes.
            clock: Source of "now" for ``iat``, ``exp`` and expiry checks.
        """
        self._config = config
        self._clock = clock

    @property
    def config(self) -> TokenConfig:
        """Signing configuration in use."""
        return self._config

    def _secret_for(self, token_type: TokenType) -> str:
        if token_type is TokenType.ACCESS:
            return self._config.access_secret
        return self._config.refresh_secret

    def mint_access_token(self, user: User, company: Company) -> str:
        """Create a short-lived access token.

        Args:
            user: Authenticated user.
            company: The user's company.

        Returns:
            Encoded JWT string.
        """
        now = self._clock()
        expire = now + self._config.access_ttl

        payload = {
            "sub": user.public_id,
            "company_id": company.public_id,
            "role": user.role.value,
            "type": TokenType.ACCESS.value,
            "jti": uuid.uuid4().hex,
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp()),
        }

        return jwt.encode(payload, self._config.access_secret, algorithm=self._config.algorithm)

    def mint_refresh_pair(self, user: User) -> tuple[str, str]:
        """Create a session id and the signed refresh token that carries it.

        Args:
            user: User the session belongs to.

        Returns:
            Tuple of (session_id, encoded refresh JWT).
        """
        now = self._clock()
        expire = now + self._config.refresh_ttl
        session_id = generate_session_id()

        payload = {
            "sub": user.public_id,
            "token_id": session_id,
            "type": TokenType.REFRESH.value,
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp()),
        }

        token = jwt.encode(payload, self._config.refresh_secret, algorithm=self._config.algorithm)
        return session_id, token

    def verify(self, token: str, expected_type: TokenType) -> AccessClaims | RefreshClaims:
        """Decode and validate a token of the expected class.

        Args:
            token: Encoded JWT string.
            expected_type: Which token class the caller accepts.

        Returns:
            AccessClaims or RefreshClaims, matching ``expected_type``.

        Raises:
            InvalidSignatureError: Malformed token or bad signature.
            TokenExpiredError: Signature fine, token expired.
            WrongTokenTypeError: Token belongs to the other class.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_for(expected_type),
                algorithms=[self._config.algorithm],
                # Expiry is checked below against the injected clock
                options={
                    "require": ["sub", "type", "exp", "iat"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidSignatureError:
            if self._signed_as_other_type(token, expected_type):
                raise WrongTokenTypeError() from None
            raise InvalidSignatureError() from None
        except jwt.InvalidTokenError as e:
            raise InvalidSignatureError(f"Invalid token: {e}") from None

        exp = payload["exp"]
        if not isinstance(exp, int | float):
            raise InvalidSignatureError("Invalid token: exp must be a number")
        if exp <= self._clock().timestamp():
            raise TokenExpiredError()

        if payload.get("type") != expected_type.value:
            raise WrongTokenTypeError()

        try:
            if expected_type is TokenType.ACCESS:
                return AccessClaims(**payload)
            return RefreshClaims(**payload)
        except ValueError as e:
            raise InvalidSignatureError(f"Invalid token claims: {e}") from None

    def _signed_as_other_type(self, token: str, expected_type: TokenType) -> bool:
        other = TokenType.REFRESH if expected_type is TokenType.ACCESS else TokenType.ACCESS
        try:
            payload = jwt.decode(
                token,
                self._secret_for(other),
                algorithms=[self._config.algorithm],
                options={"verify_exp": False},
            )
        except jwt.InvalidTokenError:
            return False
        return payload.get("type") == other.value
