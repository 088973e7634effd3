"""Hierarchy store: queries over organisation structures.

Descendant lookups go through the unique ``path`` index as prefix searches,
one round-trip regardless of how deep the tree is.
"""

from typing import Iterable, List, Optional

from sqlalchemy import func, or_

from ..core.paths import descendant_pattern
from ..exceptions import StructureNotFoundError
from ..models.structure import OrganisationStructure
from .base import BaseRepository


class StructureRepository(BaseRepository[OrganisationStructure]):
    """Data access layer for organisation structures."""

    model_class = OrganisationStructure
    not_found_error = StructureNotFoundError

    def list_all(self) -> List[OrganisationStructure]:
        """Every structure, ordered by (level, name)."""
        return self._base_query().order_by(
            OrganisationStructure.level,
            OrganisationStructure.name,
        ).all()

    def find_by_name_under_parent(
        self, name: str, parent_id: Optional[str]
    ) -> Optional[OrganisationStructure]:
        """Sibling with exactly *name* under *parent_id* (``None`` = root tier)."""
        query = self._base_query().filter(OrganisationStructure.name == name)
        if parent_id is None:
            query = query.filter(OrganisationStructure.level == 0)
        else:
            query = query.filter(OrganisationStructure.parent_id == parent_id)
        return query.first()

    def find_by_path(self, path: str) -> Optional[OrganisationStructure]:
        return self._base_query().filter(OrganisationStructure.path == path).first()

    def find_by_path_prefix(self, prefix: str) -> List[OrganisationStructure]:
        """Strict descendants of the structure at *prefix*."""
        return self.find_descendants([prefix])

    def find_descendants(self, paths: Iterable[str]) -> List[OrganisationStructure]:
        """Strict descendants of any structure in *paths*, in one query."""
        clauses = [
            OrganisationStructure.path.like(descendant_pattern(p), escape="\\")
            for p in dict.fromkeys(paths)
        ]
        if not clauses:
            return []
        return (
            self._base_query()
            .filter(or_(*clauses))
            .order_by(OrganisationStructure.level, OrganisationStructure.name)
            .all()
        )

    def insert(self, structure: OrganisationStructure) -> OrganisationStructure:
        return self.add(structure)

    def count_children(self, parent_id: str) -> int:
        return self._base_query().filter(OrganisationStructure.parent_id == parent_id).count()

    def max_level(self) -> Optional[int]:
        """Deepest level present, or None when the tree is empty."""
        return self.db.query(func.max(OrganisationStructure.level)).scalar()

    def level_counts(self) -> dict[int, int]:
        rows = (
            self.db.query(OrganisationStructure.level, func.count(OrganisationStructure.id))
            .group_by(OrganisationStructure.level)
            .all()
        )
        return {level: count for level, count in rows}
