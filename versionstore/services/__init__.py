"""Business logic services."""

from .diff_service import DiffRenderer, FieldDiffer
from .file_service import FileStore
from .version_service import VersionService, list_for_audit, purge_version_table

__all__ = [
    "DiffRenderer",
    "FieldDiffer",
    "FileStore",
    "VersionService",
    "list_for_audit",
    "purge_version_table",
]
