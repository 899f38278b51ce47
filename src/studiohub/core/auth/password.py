"""Password hashing utilities using bcrypt."""

import asyncio

import bcrypt

DEFAULT_ROUNDS = 12


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password
        rounds: bcrypt work factor (log2 of the iteration count)

    Returns:
        Bcrypt hash string
    """
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash.

    Args:
        plain_password: Plain text password to check
        hashed_password: Bcrypt hash to check against

    Returns:
        True if password matches hash
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


class PasswordHasher:
    """Async facade over bcrypt; both operations run in a worker thread."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        """Initialize with a work factor.

        Args:
            rounds: bcrypt work factor.
        """
        self.rounds = rounds

    async def hash(self, password: str) -> str:
        """Hash a password off the event loop."""
        return await asyncio.to_thread(hash_password, password, self.rounds)

    async def compare(self, password: str, hashed: str) -> bool:
        """Check a password off the event loop."""
        return await asyncio.to_thread(verify_password, password, hashed)
