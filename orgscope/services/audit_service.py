"""Audit logging service: records every state-changing operation.

Entries are immutable. ``record`` stages an entry on the caller's session
so it commits (or rolls back) together with the change it describes.

Usage in service layer:
    audit_service.record(db, action="grant_create", resource_type="permission",
                         resource_id=grant.id, details={"user_id": user.id})
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..core.logging_config import client_ip_var
from ..models.user import AuditLog

logger = logging.getLogger(__name__)


def record(
    db: Session,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    details: Optional[dict] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """Stage an audit entry inside the current transaction (no commit).

    *ip_address* defaults to the client of the request being served.
    """
    entry = AuditLog(
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=json.dumps(details, default=str) if details else None,
        ip_address=ip_address or client_ip_var.get() or None,
    )
    db.add(entry)
    return entry


def get_recent(db: Session, limit: int = 100) -> list[AuditLog]:
    """Get the most recent audit log entries."""
    return (
        db.query(AuditLog)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def get_by_resource(db: Session, resource_type: str, resource_id: str, limit: int = 100) -> list[AuditLog]:
    """Get audit log entries for a specific resource."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.resource_type == resource_type, AuditLog.resource_id == resource_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def purge_old_entries(db: Session, days: int = 365) -> int:
    """Delete audit log entries older than `days`. Returns count of deleted rows.

    Skipped when days <= 0 (keep forever). Never raises; failures are logged.
    """
    if days <= 0:
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    try:
        count = db.query(AuditLog).filter(AuditLog.created_at < cutoff).delete()
        db.commit()
        return count
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to purge audit log: %s", e)
        db.rollback()
        return 0
