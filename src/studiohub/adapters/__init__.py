"""Adapters - Infrastructure implementations of core interfaces.

- auth/: Company and user repositories (PostgreSQL, in-memory)
- db/: Application database connection pool and schema
"""
