"""Structure creation and whole-hierarchy tree building.

Creation is the only way a structure enters the tree, so this module is
where the materialised-path invariants are established: the path is the
parent's path plus the slug of the name, the level is the parent's plus one,
and the parent must already exist (no cycles by construction).
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.paths import LEVEL_NAMES, child_path, level_name, parent_path_of, slugify
from ..exceptions import (
    DuplicateNameError,
    MaxDepthExceededError,
    ParentNotFoundError,
    PathConflictError,
    ValidationError,
)
from ..models.structure import OrganisationStructure
from ..repositories.permission_repository import PermissionRepository
from ..repositories.structure_repository import StructureRepository
from ..schemas.structure import (
    HierarchyMetadata,
    HierarchyStats,
    HierarchyTreeResponse,
    StructureCreate,
    StructureCreateResponse,
    StructureDetail,
    StructureSummary,
    TreeNode,
)
from . import audit_service

logger = logging.getLogger(__name__)


def _name_key(structure: OrganisationStructure) -> tuple:
    return (structure.name.casefold(), structure.name)


def build_tree(
    structures: Iterable[OrganisationStructure],
    roots: Iterable[OrganisationStructure],
    user_counts: Dict[str, int],
) -> List[TreeNode]:
    """Assemble TreeNodes below *roots* from a flat list of *structures*.

    A node's children are the structures whose path is exactly one segment
    longer than its own; siblings are ordered by name, ignoring case. Roots
    are ordered by level, then name.
    """
    children_by_path: Dict[str, List[OrganisationStructure]] = defaultdict(list)
    for structure in structures:
        parent_path = parent_path_of(structure.path)
        if parent_path is not None:
            children_by_path[parent_path].append(structure)

    def to_node(structure: OrganisationStructure) -> TreeNode:
        children = sorted(children_by_path.get(structure.path, []), key=_name_key)
        return TreeNode(
            id=structure.id,
            name=structure.name,
            level=structure.level,
            level_name=level_name(structure.level),
            path=structure.path,
            parent_id=structure.parent_id,
            user_count=user_counts.get(structure.id, 0),
            children=[to_node(child) for child in children],
        )

    ordered_roots = sorted(roots, key=lambda s: (s.level, *_name_key(s)))
    return [to_node(root) for root in ordered_roots]


class HierarchyService:
    """Structure creation and the global hierarchy view.

    Public methods:
        create_structure   -- validated insert, returns stats
        get_hierarchy_tree -- full forest with direct grant counts + metadata
    """

    def __init__(self, db: Session, max_depth: Optional[int] = None):
        self.db = db
        self.structure_repo = StructureRepository(db)
        self.permission_repo = PermissionRepository(db)
        self.max_depth = max_depth if max_depth is not None else settings.max_hierarchy_depth

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_structure(self, data: StructureCreate) -> StructureCreateResponse:
        """Create a structure under ``data.parent_id`` (or at the root).

        Checks run in a fixed order, each with its own error: parent exists,
        no sibling with the same name, no structure on the derived path,
        depth limit. The unique index on ``path`` backs the path check when
        two creates race.
        """
        name = data.name
        slug = slugify(name)
        if not slug:
            raise ValidationError("Name must contain at least one letter or digit", field="name")

        parent: Optional[OrganisationStructure] = None
        if data.parent_id is not None:
            parent = self.structure_repo.get_by_id_optional(data.parent_id)
            if parent is None:
                raise ParentNotFoundError(data.parent_id)

        level = parent.level + 1 if parent else 0
        path = child_path(parent.path if parent else None, slug)
        parent_id = parent.id if parent else None
        parent_name = parent.name if parent else None

        if self.structure_repo.find_by_name_under_parent(name, parent_id) is not None:
            raise DuplicateNameError(name, parent_name)

        if self.structure_repo.find_by_path(path) is not None:
            raise PathConflictError(path)

        if level >= self.max_depth:
            raise MaxDepthExceededError(level, self.max_depth)

        structure = OrganisationStructure(
            name=name,
            parent_id=parent_id,
            level=level,
            path=path,
        )
        try:
            self.structure_repo.insert(structure)
        except IntegrityError:
            self.db.rollback()
            logger.info("Path taken by a concurrent create", extra={"path": path})
            raise PathConflictError(path)

        audit_service.record(
            self.db,
            action="structure_create",
            resource_type="structure",
            resource_id=structure.id,
            details={"name": name, "path": path, "parent_id": parent_id},
        )

        stats = HierarchyStats(
            max_level=self.structure_repo.max_level() or 0,
            total_structures=self.structure_repo.count(),
            children_count=self.structure_repo.count_children(parent_id) if parent_id else 0,
        )
        self.db.commit()
        self.db.refresh(structure)

        logger.info(
            "Structure created",
            extra={"structure_id": structure.id, "path": path, "level": level},
        )
        return StructureCreateResponse(
            structure=StructureDetail.from_model(structure),
            parent=StructureSummary.from_model(parent) if parent else None,
            hierarchy=stats,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_hierarchy_tree(self) -> HierarchyTreeResponse:
        """The whole organisation as a forest.

        ``user_count`` on each node counts grants on exactly that node (not
        its descendants). ``total_users`` counts distinct users holding any
        grant.
        """
        structures = self.structure_repo.list_all()
        user_counts = self.permission_repo.count_by_structure()
        roots = [s for s in structures if parent_path_of(s.path) is None]

        level_counts = self.structure_repo.level_counts()

        level_names = dict(LEVEL_NAMES)
        for level in level_counts:
            level_names.setdefault(level, level_name(level))

        metadata = HierarchyMetadata(
            total_structures=len(structures),
            total_users=self.permission_repo.count_distinct_users(),
            max_depth=max(level_counts) + 1 if level_counts else 0,
            level_counts=level_counts,
            level_names=level_names,
            paths=sorted(s.path for s in structures),
        )
        return HierarchyTreeResponse(
            tree=build_tree(structures, roots, user_counts),
            metadata=metadata,
        )
