"""
Base repository with common CRUD operations.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from commitscope.models.db import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic repository for a single model class."""

    def __init__(self, model: Type[ModelType], session: Session):
        self.model = model
        self.session = session

    def get(self, id: Any) -> Optional[ModelType]:
        """Get an instance by primary key."""
        return self.session.get(self.model, id)

    def count(self) -> int:
        """Count all instances."""
        return self.session.query(func.count()).select_from(self.model).scalar() or 0

    def delete(self, instance: ModelType) -> None:
        """Delete an instance and flush."""
        self.session.delete(instance)
        self.session.flush()
