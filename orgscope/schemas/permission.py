"""Permission grant schemas."""

from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, field_validator

from ..core.identifiers import check_uuid
from .structure import StructureSummary
from .user import UserResponse


class GrantRequest(BaseModel):
    user_id: str
    structure_id: str

    @field_validator('user_id', 'structure_id')
    @classmethod
    def validate_ids(cls, v: str) -> str:
        return check_uuid(v)


class ReplacePermissionsRequest(BaseModel):
    """The complete desired set of granted structures. Empty revokes everything."""
    structure_ids: List[str]

    @field_validator('structure_ids')
    @classmethod
    def validate_ids(cls, v: List[str]) -> List[str]:
        v = [check_uuid(structure_id) for structure_id in v]
        # Keep first occurrence order, drop repeats.
        return list(dict.fromkeys(v))


class GrantedPermission(BaseModel):
    id: str
    user: UserResponse
    structure: StructureSummary
    assigned_at: datetime


class GrantResponse(BaseModel):
    permission: GrantedPermission


class PermissionEntry(BaseModel):
    permission_id: str
    structure: StructureSummary
    assigned_at: datetime


class PermissionSummary(BaseModel):
    total_permissions: int
    level_distribution: Dict[str, int]
    has_multiple_permissions: bool
    access_levels: List[int]


class UserPermissionsResponse(BaseModel):
    user: UserResponse
    permissions: List[PermissionEntry]
    summary: PermissionSummary
    permissions_by_level: Dict[int, List[PermissionEntry]]


class RevokedPermission(BaseModel):
    permission_id: str
    user_id: str
    user_name: str
    structure_id: str
    structure_name: str
    revoked_at: datetime


class RevokeResponse(BaseModel):
    revoked_permission: RevokedPermission
    remaining_permissions: int


class PermissionChanges(BaseModel):
    added: List[StructureSummary]
    removed: List[StructureSummary]
    unchanged: List[StructureSummary]


class ReplaceSummary(BaseModel):
    total_permissions: int
    added_count: int
    removed_count: int
    unchanged_count: int


class ReplacePermissionsResponse(BaseModel):
    user: UserResponse
    changes: PermissionChanges
    summary: ReplaceSummary
