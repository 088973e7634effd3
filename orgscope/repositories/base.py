"""Base repository with shared get-by-ID patterns.

Subclasses set model_class and not_found_error; the base provides lookups
by primary key. Repositories never commit: they add and flush inside the
caller's transaction, and the service layer decides when to commit.
"""

from typing import TypeVar, Generic, Iterable, Optional, Type
from sqlalchemy.orm import Session, Query

from ..database import Base
from ..exceptions import OrgScopeError

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Shared repository logic for SQLAlchemy models.

    Class variables to set in subclasses:
        model_class:     The SQLAlchemy model (e.g., User)
        id_column:       Name of the primary-key column (default "id")
        not_found_error: Exception class to raise from get_by_id
    """

    model_class: Type[ModelT]
    id_column: str = "id"
    not_found_error: Type[OrgScopeError]

    def __init__(self, db: Session):
        self.db = db

    def _base_query(self) -> Query:
        return self.db.query(self.model_class)

    def get_by_id(self, entity_id: str) -> ModelT:
        """Get entity by primary key. Raises not_found_error if missing."""
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity

    def get_by_id_optional(self, entity_id: str) -> Optional[ModelT]:
        """Get entity by primary key, or None if not found."""
        col = getattr(self.model_class, self.id_column)
        return self._base_query().filter(col == entity_id).first()

    def get_many(self, entity_ids: Iterable[str]) -> list[ModelT]:
        """Fetch every entity whose id is in *entity_ids* in one query."""
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return []
        col = getattr(self.model_class, self.id_column)
        return self._base_query().filter(col.in_(ids)).all()

    def count(self) -> int:
        return self._base_query().count()

    def add(self, entity: ModelT) -> ModelT:
        """Stage *entity* and flush so generated columns are populated."""
        self.db.add(entity)
        self.db.flush()
        return entity
