"""Version repository for database operations."""

from typing import List, Optional

from sqlalchemy import case, func

from ..models import VersionRecord
from .base import BaseRepository


class VersionRepository(BaseRepository[VersionRecord]):
    """Queries over the versions table.

    Methods flush but never commit; the service owns the transaction.
    """

    model_class = VersionRecord

    def _group(self, table: str, record_id: int):
        return self._base_query().filter(
            VersionRecord.from_table == table,
            VersionRecord.pid == record_id,
        )

    def max_version(self, table: str, record_id: int) -> Optional[int]:
        """Highest version in the group, None if the group is empty."""
        return (
            self.db.query(func.max(VersionRecord.version))
            .filter(VersionRecord.from_table == table, VersionRecord.pid == record_id)
            .scalar()
        )

    def count(self, table: str, record_id: int) -> int:
        return self._group(table, record_id).count()

    def get_group(self, table: str, record_id: int) -> List[VersionRecord]:
        """All versions of a record, newest first."""
        return self._group(table, record_id).order_by(VersionRecord.version.desc()).all()

    def get_version(self, table: str, record_id: int, version: int) -> Optional[VersionRecord]:
        return self._group(table, record_id).filter(VersionRecord.version == version).first()

    def add(self, record: VersionRecord) -> VersionRecord:
        self.db.add(record)
        self.db.flush()
        return record

    def deactivate_group(self, table: str, record_id: int) -> int:
        return self._group(table, record_id).update(
            {VersionRecord.active: False}, synchronize_session="fetch"
        )

    def activate_only(self, table: str, record_id: int, version: int) -> int:
        """Make ``version`` the single active version of the group in one UPDATE."""
        return self._group(table, record_id).update(
            {VersionRecord.active: case((VersionRecord.version == version, True), else_=False)},
            synchronize_session="fetch",
        )

    def delete_older_than(self, cutoff: int) -> int:
        """Delete versions of every table created before the unix timestamp ``cutoff``."""
        return (
            self.db.query(VersionRecord)
            .filter(VersionRecord.tstamp < cutoff)
            .delete(synchronize_session=False)
        )

    def delete_all(self) -> int:
        return self.db.query(VersionRecord).delete(synchronize_session=False)

    # ------------------------------------------------------------------
    # Audit listing
    # ------------------------------------------------------------------

    def _audit_query(self, user_id: Optional[int]):
        query = self.db.query(VersionRecord).filter(
            VersionRecord.version > 1,
            VersionRecord.edit_url.isnot(None),
            VersionRecord.edit_url != "",
        )
        if user_id is not None:
            query = query.filter(VersionRecord.user_id == user_id)
        return query

    def audit_count(self, user_id: Optional[int]) -> int:
        """Count edited versions across all tables. ``user_id`` None means every editor's."""
        return self._audit_query(user_id).count()

    def audit_rows(self, user_id: Optional[int], offset: int, limit: int) -> List[VersionRecord]:
        """One page of edited versions across all tables, newest first."""
        return (
            self._audit_query(user_id).order_by(VersionRecord.tstamp.desc(), VersionRecord.pid, VersionRecord.version.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
