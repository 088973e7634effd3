"""Grant management: grant, revoke, list and replace a user's permissions.

Each mutation is one transaction. The existence checks here give callers
precise errors; the unique constraint on ``(user_id, structure_id)`` is what
actually keeps grants unique when two requests race.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.paths import level_name
from ..exceptions import AlreadyGrantedError, StructureNotFoundError
from ..repositories.permission_repository import PermissionRepository
from ..repositories.structure_repository import StructureRepository
from ..repositories.user_repository import UserRepository
from ..schemas.permission import (
    GrantedPermission,
    GrantResponse,
    PermissionChanges,
    PermissionEntry,
    PermissionSummary,
    ReplacePermissionsResponse,
    ReplaceSummary,
    RevokedPermission,
    RevokeResponse,
    UserPermissionsResponse,
)
from ..schemas.structure import StructureSummary
from ..schemas.user import UserResponse
from . import audit_service

logger = logging.getLogger(__name__)


class PermissionService:
    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.structure_repo = StructureRepository(db)
        self.permission_repo = PermissionRepository(db)

    def grant_permission(self, user_id: str, structure_id: str) -> GrantResponse:
        """Grant *structure_id* (and everything below it) to *user_id*."""
        user = self.user_repo.get_by_id(user_id)
        structure = self.structure_repo.get_by_id(structure_id)

        if self.permission_repo.grant_exists(user_id, structure_id):
            raise AlreadyGrantedError(user.name, structure.name, user_id, structure_id)

        try:
            grant = self.permission_repo.insert_grant(user_id, structure_id)
        except IntegrityError:
            self.db.rollback()
            raise AlreadyGrantedError(user.name, structure.name, user_id, structure_id)

        audit_service.record(
            self.db,
            action="grant_create",
            resource_type="permission",
            resource_id=grant.id,
            details={"user_id": user_id, "structure_id": structure_id, "path": structure.path},
        )
        self.db.commit()
        self.db.refresh(grant)

        logger.info(
            "Permission granted",
            extra={"permission_id": grant.id, "user_id": user_id, "structure_id": structure_id},
        )
        return GrantResponse(
            permission=GrantedPermission(
                id=grant.id,
                user=UserResponse.model_validate(user),
                structure=StructureSummary.from_model(structure),
                assigned_at=grant.created_at,
            )
        )

    def revoke_permission(self, user_id: str, permission_id: str) -> RevokeResponse:
        """Delete one grant. The grant must belong to *user_id*."""
        user = self.user_repo.get_by_id(user_id)
        grant = self.permission_repo.get_for_user(permission_id, user_id)
        structure = grant.structure

        revoked = RevokedPermission(
            permission_id=grant.id,
            user_id=user.id,
            user_name=user.name,
            structure_id=structure.id,
            structure_name=structure.name,
            revoked_at=datetime.now(timezone.utc),
        )

        self.permission_repo.delete_grant(grant.id)
        audit_service.record(
            self.db,
            action="grant_revoke",
            resource_type="permission",
            resource_id=permission_id,
            details={"user_id": user_id, "structure_id": structure.id},
        )
        remaining = self.permission_repo.count_grants_for_user(user_id)
        self.db.commit()

        logger.info(
            "Permission revoked",
            extra={"permission_id": permission_id, "user_id": user_id, "remaining": remaining},
        )
        return RevokeResponse(revoked_permission=revoked, remaining_permissions=remaining)

    def get_user_permissions(self, user_id: str) -> UserPermissionsResponse:
        user = self.user_repo.get_by_id(user_id)
        rows = self.permission_repo.get_grants_for_user(user_id)

        entries: List[PermissionEntry] = []
        by_level: Dict[int, List[PermissionEntry]] = defaultdict(list)
        distribution: Dict[str, int] = defaultdict(int)
        for grant, structure in rows:
            entry = PermissionEntry(
                permission_id=grant.id,
                structure=StructureSummary.from_model(structure),
                assigned_at=grant.created_at,
            )
            entries.append(entry)
            by_level[structure.level].append(entry)
            distribution[level_name(structure.level)] += 1

        return UserPermissionsResponse(
            user=UserResponse.model_validate(user),
            permissions=entries,
            summary=PermissionSummary(
                total_permissions=len(entries),
                level_distribution=dict(distribution),
                has_multiple_permissions=len(entries) > 1,
                access_levels=sorted(by_level),
            ),
            permissions_by_level=dict(by_level),
        )

    def replace_permissions(self, user_id: str, structure_ids: List[str]) -> ReplacePermissionsResponse:
        """Make *structure_ids* the user's complete set of grants.

        Every unknown id is reported in a single StructureNotFoundError.
        Structures already granted are left untouched; an empty list
        revokes everything.
        """
        user = self.user_repo.get_by_id(user_id)

        requested = list(dict.fromkeys(structure_ids))
        found = {s.id: s for s in self.structure_repo.get_many(requested)}
        missing = [sid for sid in requested if sid not in found]
        if missing:
            raise StructureNotFoundError(missing[0], missing_ids=missing)

        current = {structure.id: structure for _, structure in self.permission_repo.get_grants_for_user(user_id)}

        added = [found[sid] for sid in requested if sid not in current]
        removed = [s for sid, s in current.items() if sid not in found]
        unchanged = [s for sid, s in current.items() if sid in found]

        try:
            self.permission_repo.delete_grants_for_structures(user_id, [s.id for s in removed])
            for structure in added:
                self.permission_repo.insert_grant(user_id, structure.id)
        except IntegrityError:
            self.db.rollback()
            structure = added[0]
            raise AlreadyGrantedError(user.name, structure.name, user_id, structure.id)

        audit_service.record(
            self.db,
            action="grants_replace",
            resource_type="user",
            resource_id=user_id,
            details={
                "added": [s.id for s in added],
                "removed": [s.id for s in removed],
            },
        )
        self.db.commit()

        logger.info(
            "Permissions replaced",
            extra={
                "user_id": user_id,
                "added": len(added),
                "removed": len(removed),
                "unchanged": len(unchanged),
            },
        )

        def summaries(structures):
            ordered = sorted(structures, key=lambda s: (s.level, s.name))
            return [StructureSummary.from_model(s) for s in ordered]

        return ReplacePermissionsResponse(
            user=UserResponse.model_validate(user),
            changes=PermissionChanges(
                added=summaries(added),
                removed=summaries(removed),
                unchanged=summaries(unchanged),
            ),
            summary=ReplaceSummary(
                total_permissions=len(added) + len(unchanged),
                added_count=len(added),
                removed_count=len(removed),
                unchanged_count=len(unchanged),
            ),
        )
