"""AuditLog model."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func
from ..database import Base


class AuditLog(Base):
    """Immutable record of state-changing operations.

    Written by the service layer, never modified.
    Fields:
        action       : version_create, version_restore, version_purge
        resource_type: the source table of the versioned record
        resource_id  : ID of the affected record
        message      : human-readable line, e.g.
                       'Version 2 of record "tl_news.id=5" has been created'
        details      : JSON string with additional context
    """

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    username = Column(String(64), nullable=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(255), nullable=False)
    resource_id = Column(String(255), nullable=True)
    message = Column(Text, nullable=False, default="")
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
