"""Record versioning for content tables.

Stores snapshots of content rows, lists and compares them, and restores
an old snapshot onto the live row.
"""

from .exceptions import ConfigurationError, StorageError, UnknownTableError, VersionStoreException
from .identity import Actor
from .registry import FieldDescriptor, SchemaRegistry, TableSchema
from .services import VersionService, list_for_audit, purge_version_table

__version__ = "1.0.0"

__all__ = [
    "Actor",
    "ConfigurationError",
    "FieldDescriptor",
    "SchemaRegistry",
    "StorageError",
    "TableSchema",
    "UnknownTableError",
    "VersionService",
    "VersionStoreException",
    "list_for_audit",
    "purge_version_table",
]
