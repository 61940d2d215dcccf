"""Database models."""

from .version import VersionRecord
from .audit import AuditLog

__all__ = ["VersionRecord", "AuditLog"]
