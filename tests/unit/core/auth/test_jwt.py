"""Tests for the token service."""

from datetime import UTC, datetime, timedelta

import jwt as pyjwt
import pytest

from studiohub.core.auth.jwt import (
    InvalidSignatureError,
    TokenConfig,
    TokenExpiredError,
    TokenService,
    WrongTokenTypeError,
)
from studiohub.core.auth.types import (
    AccessClaims,
    Company,
    RefreshClaims,
    TokenType,
    User,
)
from tests.fixtures.auth import FakeClock


class TestTokenConfig:
    """Test signing configuration validation."""

    def test_requires_both_secrets(self) -> None:
        """Should refuse a missing secret."""
        with pytest.raises(ValueError):
            TokenConfig(access_secret="a", refresh_secret="")

    def test_requires_distinct_secrets(self) -> None:
        """Should refuse the same secret for both token classes."""
        with pytest.raises(ValueError):
            TokenConfig(access_secret="same", refresh_secret="same")


class TestMintAccessToken:
    """Test access token creation."""

    def test_token_contains_claims(
        self, token_service: TokenService, sample_user: User, sample_company: Company
    ) -> None:
        """Token should carry user, company, role and type."""
        token = token_service.mint_access_token(sample_user, sample_company)

        claims = token_service.verify(token, TokenType.ACCESS)

        assert isinstance(claims, AccessClaims)
        assert claims.sub == sample_user.public_id
        assert claims.company_id == sample_company.public_id
        assert claims.role == sample_user.role
        assert claims.type == TokenType.ACCESS

    def test_tokens_minted_together_differ(
        self, token_service: TokenService, sample_user: User, sample_company: Company
    ) -> None:
        """Two tokens minted in the same second should not be identical."""
        first = token_service.mint_access_token(sample_user, sample_company)
        second = token_service.mint_access_token(sample_user, sample_company)

        assert first != second

    def test_expires_after_fifteen_minutes(
        self, token_service: TokenService, sample_user: User, sample_company: Company
    ) -> None:
        """Access token lifetime should be 15 minutes."""
        token = token_service.mint_access_token(sample_user, sample_company)

        claims = token_service.verify(token, TokenType.ACCESS)

        assert claims.exp - claims.iat == 15 * 60

    def test_expiry_follows_injected_clock(
        self,
        token_service: TokenService,
        clock: FakeClock,
        sample_user: User,
        sample_company: Company,
    ) -> None:
        """iat comes from the clock and the token expires when the clock passes exp."""
        token = token_service.mint_access_token(sample_user, sample_company)

        claims = token_service.verify(token, TokenType.ACCESS)
        assert claims.iat == int(clock.current.timestamp())

        clock.advance(minutes=14, seconds=59)
        token_service.verify(token, TokenType.ACCESS)

        clock.advance(seconds=1)
        with pytest.raises(TokenExpiredError):
            token_service.verify(token, TokenType.ACCESS)


class TestMintRefreshPair:
    """Test refresh token creation."""

    def test_token_carries_session_id(
        self, token_service: TokenService, sample_user: User
    ) -> None:
        """Refresh token should carry the session id it was minted with."""
        session_id, token = token_service.mint_refresh_pair(sample_user)

        claims = token_service.verify(token, TokenType.REFRESH)

        assert isinstance(claims, RefreshClaims)
        assert claims.token_id == session_id
        assert claims.sub == sample_user.public_id

    def test_session_id_is_320_bits(self, token_service: TokenService, sample_user: User) -> None:
        """Session id should be 40 random bytes, hex encoded."""
        session_id, _ = token_service.mint_refresh_pair(sample_user)

        assert len(session_id) == 80
        int(session_id, 16)

    def test_session_ids_are_unique(self, token_service: TokenService, sample_user: User) -> None:
        """Every pair should get a fresh session id."""
        ids = {token_service.mint_refresh_pair(sample_user)[0] for _ in range(20)}

        assert len(ids) == 20


class TestVerify:
    """Test token verification."""

    def test_refresh_token_rejected_as_access(
        self, token_service: TokenService, sample_user: User
    ) -> None:
        """A refresh token presented as access should be the wrong type."""
        _, token = token_service.mint_refresh_pair(sample_user)

        with pytest.raises(WrongTokenTypeError):
            token_service.verify(token, TokenType.ACCESS)

    def test_access_token_rejected_as_refresh(
        self, token_service: TokenService, sample_user: User, sample_company: Company
    ) -> None:
        """An access token presented as refresh should be the wrong type."""
        token = token_service.mint_access_token(sample_user, sample_company)

        with pytest.raises(WrongTokenTypeError):
            token_service.verify(token, TokenType.REFRESH)

    def test_type_claim_mismatch(self, token_config: TokenConfig) -> None:
        """A token signed with the right secret but the wrong type claim is rejected."""
        now = datetime.now(UTC)
        token = pyjwt.encode(
            {
                "sub": "user",
                "type": "refresh",
                "token_id": "abc",
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(minutes=5)).timestamp()),
            },
            token_config.access_secret,
            algorithm="HS256",
        )

        with pytest.raises(WrongTokenTypeError):
            TokenService(token_config).verify(token, TokenType.ACCESS)

    def test_expired_token(self, token_config: TokenConfig) -> None:
        """Should raise TokenExpiredError once exp has passed."""
        now = datetime.now(UTC)
        token = pyjwt.encode(
            {
                "sub": "user",
                "company_id": "company",
                "role": "viewer",
                "type": "access",
                "jti": "x",
                "iat": int((now - timedelta(hours=1)).timestamp()),
                "exp": int((now - timedelta(minutes=1)).timestamp()),
            },
            token_config.access_secret,
            algorithm="HS256",
        )

        with pytest.raises(TokenExpiredError):
            TokenService(token_config).verify(token, TokenType.ACCESS)

    def test_foreign_secret(self, token_service: TokenService) -> None:
        """A token signed with an unknown secret is an invalid signature."""
        now = datetime.now(UTC)
        token = pyjwt.encode(
            {
                "sub": "user",
                "type": "access",
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(minutes=5)).timestamp()),
            },
            "someone-else",
            algorithm="HS256",
        )

        with pytest.raises(InvalidSignatureError):
            token_service.verify(token, TokenType.ACCESS)

    def test_garbage(self, token_service: TokenService) -> None:
        """A malformed token is an invalid signature."""
        with pytest.raises(InvalidSignatureError):
            token_service.verify("invalid.token.here", TokenType.ACCESS)

    def test_missing_claims(self, token_config: TokenConfig) -> None:
        """An access token without company or role claims is rejected."""
        now = datetime.now(UTC)
        token = pyjwt.encode(
            {
                "sub": "user",
                "type": "access",
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(minutes=5)).timestamp()),
            },
            token_config.access_secret,
            algorithm="HS256",
        )

        with pytest.raises(InvalidSignatureError):
            TokenService(token_config).verify(token, TokenType.ACCESS)
