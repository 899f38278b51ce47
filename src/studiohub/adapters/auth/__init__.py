"""Auth adapters."""

from studiohub.adapters.auth.memory import InMemoryAuthRepository
from studiohub.adapters.auth.postgres import PostgresAuthRepository

__all__ = ["InMemoryAuthRepository", "PostgresAuthRepository"]
