"""Accessible-scope response schemas."""

from typing import List

from pydantic import BaseModel

from .structure import StructureSummary, TreeNode
from .user import UserResponse


class DirectGrantResponse(BaseModel):
    permission_id: str
    structure: StructureSummary


class AccessTreeResponse(BaseModel):
    tree: List[TreeNode]
    total_structures: int


class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class StructureUsersResponse(BaseModel):
    structure: StructureSummary
    users: List[UserResponse]
    pagination: Pagination


class AccessSearchResponse(BaseModel):
    users: List[UserResponse]
    total: int


class AccessibleUser(UserResponse):
    """A visible user with the accessible structures they are seen through."""
    structures: List[StructureSummary]


class AccessibleUsersResponse(BaseModel):
    user_id: str
    direct_grants: List[DirectGrantResponse]
    accessible_structures: List[StructureSummary]
    accessible_users: List[AccessibleUser]
    total_users: int
    total_structures: int
