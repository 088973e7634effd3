"""Permission API: grant a structure to a user.

Listing, replacing and revoking a user's grants live under /api/users.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.permission import GrantRequest, GrantResponse
from ..services.permission_service import PermissionService

router = APIRouter(prefix="/api/permissions", tags=["permissions"])


@router.post("", response_model=GrantResponse, status_code=201)
def grant_permission(request: GrantRequest, db: Session = Depends(get_db)):
    return PermissionService(db).grant_permission(request.user_id, request.structure_id)
