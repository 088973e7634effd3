"""User API: directory, per-user grants, and the accessible-users views.

Every ``{user_id}`` in these routes is the caller whose scope is being
queried. Path ids are format-checked before any lookup.
"""

import logging
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.identifiers import require_uuid
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.access import (
    AccessSearchResponse,
    AccessTreeResponse,
    StructureUsersResponse,
)
from ..schemas.permission import (
    ReplacePermissionsRequest,
    ReplacePermissionsResponse,
    RevokeResponse,
    UserPermissionsResponse,
)
from ..schemas.user import UserCreate, UserListResponse, UserResponse, UserSearchResponse
from ..services.access_service import AccessService
from ..services.permission_service import PermissionService
from ..services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class AccessMode(str, Enum):
    tree = "tree"
    users = "users"
    search = "search"


# -- Directory ------------------------------------------------------------

@router.get("", response_model=UserListResponse)
def list_users(db: Session = Depends(get_db)):
    users = UserService(db).list_users()
    return UserListResponse(data=[UserResponse.model_validate(u) for u in users], total=len(users))


@router.post("", response_model=UserResponse, status_code=201)
def create_user(data: UserCreate, db: Session = Depends(get_db)):
    return UserService(db).create_user(data)


@router.get("/search", response_model=UserSearchResponse)
def search_users(
    q: str = Query(""),
    limit: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """Search all users by name or email. Not scoped to any caller."""
    text, effective_limit, users = UserService(db).search_users(q, limit)
    return UserSearchResponse(
        data=[UserResponse.model_validate(u) for u in users],
        total=len(users),
        query=text,
        limit=effective_limit,
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    user_id = require_uuid(user_id, "user_id")
    return UserService(db).get_user(user_id)


# -- Grants ---------------------------------------------------------------

@router.get("/{user_id}/permissions", response_model=UserPermissionsResponse)
def get_user_permissions(user_id: str, db: Session = Depends(get_db)):
    user_id = require_uuid(user_id, "user_id")
    return PermissionService(db).get_user_permissions(user_id)


@router.put("/{user_id}/permissions", response_model=ReplacePermissionsResponse)
def replace_user_permissions(
    user_id: str,
    request: ReplacePermissionsRequest,
    db: Session = Depends(get_db),
):
    """Replace the user's grants with exactly ``structure_ids``."""
    user_id = require_uuid(user_id, "user_id")
    return PermissionService(db).replace_permissions(user_id, request.structure_ids)


@router.delete("/{user_id}/permissions/{permission_id}", response_model=RevokeResponse)
def revoke_user_permission(user_id: str, permission_id: str, db: Session = Depends(get_db)):
    user_id = require_uuid(user_id, "user_id")
    permission_id = require_uuid(permission_id, "permission_id")
    return PermissionService(db).revoke_permission(user_id, permission_id)


# -- Accessible users -----------------------------------------------------

@router.get("/{user_id}/accessible-users/tree", response_model=AccessTreeResponse)
def get_access_tree(user_id: str, db: Session = Depends(get_db)):
    """Forest of structures the user can see, with visible-user counts."""
    user_id = require_uuid(user_id, "user_id")
    return AccessService(db).get_access_tree(user_id)


@router.get(
    "/{user_id}/accessible-users/structures/{structure_id}",
    response_model=StructureUsersResponse,
)
def get_users_in_structure(
    user_id: str,
    structure_id: str,
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    user_id = require_uuid(user_id, "user_id")
    structure_id = require_uuid(structure_id, "structure_id")
    return AccessService(db).get_users_in_structure(user_id, structure_id, page=page, page_size=limit)


@router.get("/{user_id}/accessible-users/search", response_model=AccessSearchResponse)
def search_accessible_users(
    user_id: str,
    q: str = Query(""),
    limit: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    user_id = require_uuid(user_id, "user_id")
    return AccessService(db).search_accessible_users(user_id, q, limit)


@router.get("/{user_id}/accessible-users")
def get_accessible_users(
    user_id: str,
    mode: Optional[AccessMode] = Query(None),
    structure_id: Optional[str] = Query(None, alias="structureId"),
    structure_id_snake: Optional[str] = Query(None, alias="structure_id", include_in_schema=False),
    q: str = Query(""),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    db: Session = Depends(get_db),
):
    """Everything the user can see, or one view selected by ``mode``.

    ``mode=tree``, ``mode=users`` (needs ``structureId``, or ``structure_id``) and
    ``mode=search`` (needs ``q``) answer exactly like the dedicated routes.
    """
    if mode is AccessMode.tree:
        return get_access_tree(user_id, db)
    if mode is AccessMode.users:
        structure_id = structure_id or structure_id_snake
        if not structure_id:
            raise ValidationError("structureId is required for mode=users", field="structureId")
        return get_users_in_structure(user_id, structure_id, page, limit, db)
    if mode is AccessMode.search:
        return search_accessible_users(user_id, q, limit, db)

    user_id = require_uuid(user_id, "user_id")
    return AccessService(db).list_accessible_users(user_id)
