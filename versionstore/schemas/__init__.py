"""Pydantic schemas for version views."""

from .version import (
    AuditPage,
    Comparison,
    VersionBase,
    VersionOption,
    VersionSummary,
)

__all__ = [
    "AuditPage",
    "Comparison",
    "VersionBase",
    "VersionOption",
    "VersionSummary",
]
