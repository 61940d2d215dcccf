"""Audit logging service: records every version create, restore and purge.

Entries are immutable. The service provides a write-only interface for the
version store and a read interface for admins.

Usage in service layer:
    audit_service.log(db, actor, action="version_create", resource_type="tl_news",
                      resource_id=5, message='Version 2 of record "tl_news.id=5" has been created')
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import sqlalchemy.exc
from sqlalchemy.orm import Session

from ..core.config import settings
from ..identity import Actor
from ..models import AuditLog

logger = logging.getLogger(__name__)


def log(
    db: Session,
    actor: Optional[Actor],
    action: str,
    resource_type: str,
    message: str,
    resource_id=None,
    details: Optional[dict] = None,
) -> None:
    """Write an audit log entry. Never raises; audit failures are logged but don't break operations."""
    logger.info(message, extra={"action": action, "table": resource_type, "record_id": resource_id,
                                **(details or {})})
    try:
        entry = AuditLog(
            user_id=actor.user_id if actor else None,
            username=actor.username if actor else None,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            message=message,
            details=json.dumps(details) if details else None,
        )
        db.add(entry)
        db.commit()
    except sqlalchemy.exc.SQLAlchemyError as e:
        logger.warning("Failed to write audit log: %s", e)
        db.rollback()


def get_recent(db: Session, limit: int = 100) -> list[AuditLog]:
    """Get the most recent audit log entries."""
    return (
        db.query(AuditLog)
        .order_by(AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def get_by_resource(db: Session, resource_type: str, resource_id, limit: int = 100) -> list[AuditLog]:
    """Get audit log entries for a specific record."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.resource_type == resource_type, AuditLog.resource_id == str(resource_id))
        .order_by(AuditLog.id.desc())
        .limit(limit)
        .all()
    )


def purge_old_entries(db: Session, days: Optional[int] = None) -> int:
    """Delete audit log entries older than `days`. Returns count of deleted rows.

    `days` defaults to `settings.audit_retention_days`. Skipped when days <= 0
    (keep forever). Never raises; logs failures.
    """
    if days is None:
        days = settings.audit_retention_days
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
