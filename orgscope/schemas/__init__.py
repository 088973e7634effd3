"""Pydantic schemas for API validation."""

from .structure import (
    StructureCreate,
    StructureSummary,
    StructureDetail,
    StructureCreateResponse,
    HierarchyStats,
    TreeNode,
    HierarchyMetadata,
    HierarchyTreeResponse,
)
from .user import (
    UserCreate,
    UserResponse,
    UserListResponse,
    UserSearchResponse,
)
from .permission import (
    GrantRequest,
    GrantResponse,
    ReplacePermissionsRequest,
    ReplacePermissionsResponse,
    RevokeResponse,
    UserPermissionsResponse,
)
from .access import (
    AccessTreeResponse,
    AccessSearchResponse,
    AccessibleUsersResponse,
    Pagination,
    StructureUsersResponse,
)

__all__ = [
    "StructureCreate",
    "StructureSummary",
    "StructureDetail",
    "StructureCreateResponse",
    "HierarchyStats",
    "TreeNode",
    "HierarchyMetadata",
    "HierarchyTreeResponse",
    "UserCreate",
    "UserResponse",
    "UserListResponse",
    "UserSearchResponse",
    "GrantRequest",
    "GrantResponse",
    "ReplacePermissionsRequest",
    "ReplacePermissionsResponse",
    "RevokeResponse",
    "UserPermissionsResponse",
    "AccessTreeResponse",
    "AccessSearchResponse",
    "AccessibleUsersResponse",
    "Pagination",
    "StructureUsersResponse",
]
