"""Application database adapters.

Contents:
- app_db: Application database (companies, users and their sessions)
"""

from .app_db import AppDatabase

__all__ = ["AppDatabase"]
