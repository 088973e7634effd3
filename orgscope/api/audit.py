"""Audit API: read-only view of recent state changes."""

import json
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..services import audit_service

router = APIRouter(prefix="/api/audit", tags=["audit"])


class AuditEntryResponse(BaseModel):
    id: int
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details: Optional[Any] = None
    ip_address: Optional[str] = None
    created_at: datetime


@router.get("", response_model=List[AuditEntryResponse])
def list_audit_entries(
    limit: int = Query(100, ge=1, le=1000),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Most recent audit entries first, optionally for one resource."""
    if resource_type and resource_id:
        entries = audit_service.get_by_resource(db, resource_type, resource_id, limit)
    else:
        entries = audit_service.get_recent(db, limit)
    return [
        AuditEntryResponse(
            id=e.id,
            action=e.action,
            resource_type=e.resource_type,
            resource_id=e.resource_id,
            details=json.loads(e.details) if e.details else None,
            ip_address=e.ip_address,
            created_at=e.created_at,
        )
        for e in entries
    ]
