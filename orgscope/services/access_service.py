"""Accessibility queries: what a user can see, in four shapes.

Each public method is its own operation over the same ScopeResolver; none of
them branches on a mode string. All four narrow grant rows with
``AccessScope.member_criteria()``, so the set of accessible users is defined
in exactly one place.
"""

import logging
import math
from collections import OrderedDict
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..exceptions import StructureNotAccessibleError, ValidationError
from ..repositories.permission_repository import PermissionRepository
from ..repositories.user_repository import name_or_email_matches
from ..schemas.access import (
    AccessibleUser,
    AccessibleUsersResponse,
    AccessSearchResponse,
    AccessTreeResponse,
    DirectGrantResponse,
    Pagination,
    StructureUsersResponse,
)
from ..schemas.structure import StructureSummary
from ..schemas.user import UserResponse
from .hierarchy_service import build_tree
from .scope_service import ScopeResolver

logger = logging.getLogger(__name__)


def clamp_limit(limit: Optional[int], default: int, maximum: int, field: str = "limit") -> int:
    """Apply *default* when unset and cap at *maximum*. Non-positive is invalid."""
    if limit is None:
        return default
    if limit < 1:
        raise ValidationError(f"{field} must be at least 1", field=field)
    return min(limit, maximum)


def normalize_search_query(query: Optional[str]) -> str:
    """Trim *query* and enforce the minimum search length."""
    text = (query or "").strip()
    if len(text) < settings.min_search_length:
        raise ValidationError(
            f"Search query must be at least {settings.min_search_length} characters",
            field="q",
        )
    return text


class AccessService:
    """Scoped views over users and structures for one calling user.

    Public methods:
        get_access_tree          -- forest rooted at the caller's grants
        get_users_in_structure   -- paginated users granted one structure
        search_accessible_users  -- name/email search within the scope
        list_accessible_users    -- everything in one payload
    """

    def __init__(self, db: Session):
        self.db = db
        self.resolver = ScopeResolver(db)
        self.permission_repo = PermissionRepository(db)

    def get_access_tree(self, user_id: str) -> AccessTreeResponse:
        scope = self.resolver.resolve_scope(user_id)
        if scope.is_empty:
            return AccessTreeResponse(tree=[], total_structures=0)

        user_counts = self.permission_repo.count_by_structure(scope.member_criteria())
        tree = build_tree(scope.accessible_structures, scope.root_structures(), user_counts)
        return AccessTreeResponse(tree=tree, total_structures=len(scope.accessible_structures))

    def get_users_in_structure(
        self,
        user_id: str,
        structure_id: str,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> StructureUsersResponse:
        """Users granted exactly *structure_id*, one page at a time.

        The structure must lie inside the caller's scope; otherwise
        StructureNotAccessibleError is raised before any user row is read.
        """
        if page < 1:
            raise ValidationError("page must be at least 1", field="page")
        page_size = clamp_limit(page_size, settings.default_page_size, settings.max_page_size)

        scope = self.resolver.resolve_scope(user_id)
        structure = scope.get_structure(structure_id)
        if structure is None:
            logger.info(
                "Structure outside caller scope",
                extra={"user_id": user_id, "structure_id": structure_id},
            )
            raise StructureNotAccessibleError()

        query = self.permission_repo.users_on_structure(structure_id, scope.member_criteria())
        total = query.count()
        users = query.offset((page - 1) * page_size).limit(page_size).all()

        total_pages = math.ceil(total / page_size) if total else 0
        return StructureUsersResponse(
            structure=StructureSummary.from_model(structure),
            users=[UserResponse.model_validate(u) for u in users],
            pagination=Pagination(
                page=page,
                page_size=page_size,
                total=total,
                total_pages=total_pages,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    def search_accessible_users(
        self, user_id: str, query: str, limit: Optional[int] = None
    ) -> AccessSearchResponse:
        text = normalize_search_query(query)
        limit = clamp_limit(limit, settings.default_search_limit, settings.max_search_limit)

        scope = self.resolver.resolve_scope(user_id)
        if scope.is_empty:
            return AccessSearchResponse(users=[], total=0)

        matches = self.permission_repo.users_matching(
            name_or_email_matches(text), scope.member_criteria()
        )
        users = matches.limit(limit).all()
        return AccessSearchResponse(
            users=[UserResponse.model_validate(u) for u in users],
            total=len(users),
        )

    def list_accessible_users(self, user_id: str) -> AccessibleUsersResponse:
        """Direct grants, accessible structures and every visible user.

        Each user carries the accessible structures through which they are
        visible, ordered by (level, name).
        """
        scope = self.resolver.resolve_scope(user_id)
        structures = {s.id: s for s in scope.accessible_structures}

        rows = self.permission_repo.get_users_with_grant_to_any_of(
            structures.keys(), scope.member_criteria()
        )
        grouped: "OrderedDict[str, tuple]" = OrderedDict()
        for user, structure in rows:
            _, seen_through = grouped.setdefault(user.id, (user, []))
            seen_through.append(StructureSummary.from_model(structure))

        ordered = sorted(grouped.values(), key=lambda entry: (entry[0].name, entry[0].id))
        accessible_users = [
            AccessibleUser(
                **UserResponse.model_validate(user).model_dump(),
                structures=seen_through,
            )
            for user, seen_through in ordered
        ]

        direct_grants = [
            DirectGrantResponse(
                permission_id=grant.permission_id,
                structure=StructureSummary.from_model(structures[grant.structure_id]),
            )
            for grant in scope.direct_grants
        ]
        return AccessibleUsersResponse(
            user_id=user_id,
            direct_grants=direct_grants,
            accessible_structures=[StructureSummary.from_model(s) for s in scope.accessible_structures],
            accessible_users=accessible_users,
            total_users=len(accessible_users),
            total_structures=len(scope.accessible_structures),
        )
