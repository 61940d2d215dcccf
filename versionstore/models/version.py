"""Version model."""

from sqlalchemy import Boolean, Column, Index, Integer, String, Text, UniqueConstraint
from ..database import Base


class VersionRecord(Base):
    """Snapshot of one row of a content table at one point in time.

    A group is every snapshot sharing ``(from_table, pid)``. Within a group
    version numbers run 1..N and at most one snapshot is active.
    """

    __tablename__ = "versions"
    __table_args__ = (
        UniqueConstraint("from_table", "pid", "version", name="uq_versions_group_version"),
        Index("ix_versions_group", "from_table", "pid"),
        Index("ix_versions_tstamp", "tstamp"),
        Index("ix_versions_user_id", "user_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Owning row
    from_table = Column(String(255), nullable=False)
    pid = Column(Integer, nullable=False)

    version = Column(Integer, nullable=False, default=1)
    tstamp = Column(Integer, nullable=False, default=0)  # unix seconds

    # Editor info
    username = Column(String(64), nullable=False, default="")
    user_id = Column(Integer, nullable=False, default=0)

    description = Column(String(255), nullable=False, default="")
    edit_url = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=False)

    # JSON payload, see versionstore.utils.payload
    data = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<VersionRecord {self.from_table}.id={self.pid} v{self.version}{' *' if self.active else ''}>"
