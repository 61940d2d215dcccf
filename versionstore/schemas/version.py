"""Version schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class VersionBase(BaseModel):
    """Fields shared by every version view."""
    from_table: str
    pid: int
    version: int
    tstamp: int
    username: str
    user_id: int
    description: str = ""
    edit_url: Optional[str] = None
    active: bool = False


class VersionOption(BaseModel):
    """One entry of a version picker."""
    version: int
    tstamp: int
    username: str
    active: bool
    info: str  # "Version 3 (2024-05-01 10:12) jdoe"


class Comparison(BaseModel):
    """Rendered differences between two versions of a record."""
    content: str
    from_version: int = 0
    to_version: int = 0
    versions: List[VersionOption] = Field(default_factory=list)


class VersionSummary(VersionBase):
    """A row of the cross-table audit listing."""
    from_version: int
    to_version: int
    date: str
    short_table: str
    deleted: bool = False


class AuditPage(BaseModel):
    """One page of the audit listing. Pages are 1-indexed."""
    items: List[VersionSummary] = Field(default_factory=list)
    page: int
    page_size: int
    total: int
    last_page: int
    not_found: bool = False
