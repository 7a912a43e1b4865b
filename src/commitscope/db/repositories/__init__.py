"""
Repository layer for database operations.

Provides a clean API for CRUD operations on database models.
"""

from commitscope.db.repositories.base import BaseRepository
from commitscope.db.repositories.commit import CommitRepository

__all__ = [
    "BaseRepository",
    "CommitRepository",
]
