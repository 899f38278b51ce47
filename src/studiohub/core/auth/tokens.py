"""Secure random identifiers for entities and refresh-token sessions."""

import secrets
from datetime import UTC, datetime

# Identifier configuration
PUBLIC_ID_BYTES = 16  # 128 bits, rendered as 32 hex chars
SESSION_ID_BYTES = 40  # 320 bits of entropy


def generate_public_id() -> str:
    """Generate an opaque public identifier for a company or user.

    Returns:
        Hex-encoded random identifier.
    """
    return secrets.token_hex(PUBLIC_ID_BYTES)


def generate_session_id() -> str:
    """Generate a refresh-token session identifier.

    The identifier is drawn independently of any token signature, so
    knowing a signed refresh token reveals nothing about other sessions.

    Returns:
        Hex-encoded random identifier.
    """
    return secrets.token_hex(SESSION_ID_BYTES)


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat timezone-naive datetimes as UTC.

    Args:
        value: Datetime read from storage or a client.

    Returns:
        The same instant as an aware datetime.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
