"""Scope resolution: which structures, and which users, a user may see.

A grant on a structure confers visibility over that structure and every
structure whose materialised path extends it. The resolved scope is a pure
function of the current grants and structures; it is recomputed on every
call and never cached.

The accessible-user set is expressed once, as a SQL criterion over
``user_permissions JOIN organisation_structures``
(:meth:`AccessScope.member_criteria`). Every listing mode filters through
that one criterion, so a user counted in the tree is always listed for the
same structure and found by search.
"""

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import FrozenSet, List, Optional

from sqlalchemy import and_, false, or_
from sqlalchemy.orm import Session

from ..core.paths import descendant_pattern, has_ancestor_in
from ..models.structure import OrganisationStructure
from ..models.user import UserPermission
from ..repositories.permission_repository import PermissionRepository
from ..repositories.structure_repository import StructureRepository
from ..repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectGrant:
    """One of the user's own grants, with the granted structure's position."""
    permission_id: str
    structure_id: str
    name: str
    path: str
    level: int
    parent_id: Optional[str] = None


@dataclass
class AccessScope:
    """Resolved scope for ``user_id``.

    ``accessible_structures`` is the union of the granted structures and all
    of their strict descendants, deduplicated by id and ordered by
    (level, name).
    """

    user_id: str
    direct_grants: List[DirectGrant] = field(default_factory=list)
    accessible_structures: List[OrganisationStructure] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.direct_grants

    @cached_property
    def granted_ids(self) -> FrozenSet[str]:
        return frozenset(g.structure_id for g in self.direct_grants)

    @cached_property
    def granted_paths(self) -> List[str]:
        return list(dict.fromkeys(g.path for g in self.direct_grants))

    @cached_property
    def accessible_ids(self) -> FrozenSet[str]:
        return frozenset(s.id for s in self.accessible_structures)

    def contains(self, structure_id: str) -> bool:
        return structure_id in self.accessible_ids

    def get_structure(self, structure_id: str) -> Optional[OrganisationStructure]:
        for structure in self.accessible_structures:
            if structure.id == structure_id:
                return structure
        return None

    def root_structures(self) -> List[OrganisationStructure]:
        """Granted structures not already below another granted structure."""
        return [
            s for s in self.accessible_structures
            if s.id in self.granted_ids and not has_ancestor_in(s.path, self.granted_paths)
        ]

    def member_criteria(self):
        """SQL criterion admitting a grant row into the accessible-user set.

        A row (user, structure) is admitted when the structure lies strictly
        below one of this user's granted paths, or when the row is this
        user's own grant. Peers granted the very same structures are not
        admitted.
        """
        if self.is_empty:
            return false()
        downstream = or_(*[
            OrganisationStructure.path.like(descendant_pattern(path), escape="\\")
            for path in self.granted_paths
        ])
        own_grants = and_(
            UserPermission.user_id == self.user_id,
            UserPermission.structure_id.in_(sorted(self.granted_ids)),
        )
        return or_(downstream, own_grants)


class ScopeResolver:
    """Resolves a user's grants into an AccessScope.

    Two queries per call: the user's grants (joined with their structures),
    then every strict descendant of the granted paths in one prefix search.
    """

    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.structure_repo = StructureRepository(db)
        self.permission_repo = PermissionRepository(db)

    def resolve_scope(self, user_id: str) -> AccessScope:
        """Resolve *user_id*'s scope.

        Raises UserNotFoundError for an unknown user. A known user without
        grants gets an empty scope.
        """
        self.user_repo.get_by_id(user_id)

        rows = self.permission_repo.get_grants_for_user(user_id)
        if not rows:
            logger.debug("User has no grants", extra={"user_id": user_id})
            return AccessScope(user_id=user_id)

        direct_grants = [
            DirectGrant(
                permission_id=grant.id,
                structure_id=structure.id,
                name=structure.name,
                path=structure.path,
                level=structure.level,
                parent_id=structure.parent_id,
            )
            for grant, structure in rows
        ]

        accessible = {structure.id: structure for _, structure in rows}
        for structure in self.structure_repo.find_descendants(g.path for g in direct_grants):
            accessible.setdefault(structure.id, structure)

        ordered = sorted(accessible.values(), key=lambda s: (s.level, s.name, s.id))
        logger.debug(
            "Scope resolved",
            extra={"user_id": user_id, "grants": len(direct_grants), "structures": len(ordered)},
        )
        return AccessScope(
            user_id=user_id,
            direct_grants=direct_grants,
            accessible_structures=ordered,
        )
