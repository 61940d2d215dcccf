"""Data access repositories."""

from .base import BaseRepository, storage_errors
from .row_repository import RowRepository
from .version_repository import VersionRepository

__all__ = [
    "BaseRepository",
    "RowRepository",
    "VersionRepository",
    "storage_errors",
]
