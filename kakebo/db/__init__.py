"""
Kakebo Database - asyncpg pool plus per-table repositories.

- Database: shared connection pool (one per process)
- Repository: base class for table-scoped data access
"""

from .database import Database
from .repository import Repository

__all__ = ["Database", "Repository"]
