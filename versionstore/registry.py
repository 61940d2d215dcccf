"""Per-table schema registry.

Tells the version store which tables are versioned, how each field is
displayed in a comparison, and which callbacks run after a version is
created or restored. Registered once at startup and passed explicitly to
the services.

Example::

    registry = SchemaRegistry()
    registry.register(TableSchema(
        name="tl_news",
        enable_versioning=True,
        fields={
            "headline": FieldDescriptor(label="Headline"),
            "date": FieldDescriptor(label="Date", date_kind="date", sql="int(10) unsigned NOT NULL default 0"),
            "password": FieldDescriptor(hidden=True),
        },
        on_create_version=[reindex_news],
    ))
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from .exceptions import UnknownTableError

logger = logging.getLogger(__name__)

# (table, record_id, version, row)
CreateVersionHook = Callable[[str, int, int, Dict[str, Any]], None]
# (table, record_id, version, data)
RestoreVersionHook = Callable[[str, int, int, Dict[str, Any]], None]
# (record_id, table, data, version); deprecated argument order
LegacyRestoreHook = Callable[[int, str, Dict[str, Any], int], None]

Decryptor = Callable[[Any], Any]

DATE_KINDS = ("date", "time", "datim")

_NUMERIC_SQL = re.compile(
    r"^\s*(tinyint|smallint|mediumint|int|integer|bigint|float|double|decimal|numeric|real|bool|boolean)\b",
    re.IGNORECASE,
)


@dataclass
class FieldDescriptor:
    """Display and storage hints for one field.

    Attributes:
        label:           Human-readable field name used as the diff heading.
        hidden:          Never show this field in a comparison.
        encrypted:       Stored values are encrypted; decrypt before comparing.
        multiple:        Field holds several values.
        delimiter:       For multiple fields stored as delimited text.
        date_kind:       "date", "time" or "datim" for timestamp fields.
        decode_entities: Values are stored with entities already decoded, so
                         the comparison must not unescape them again.
        input_type:      Widget type; "fileTree" marks binary UUID references.
        sql:             Column definition, used to pick the empty value.
    """

    label: Optional[str] = None
    hidden: bool = False
    encrypted: bool = False
    multiple: bool = False
    delimiter: Optional[str] = None
    date_kind: Optional[str] = None
    decode_entities: bool = False
    input_type: Optional[str] = None
    sql: Optional[str] = None

    def __post_init__(self):
        if self.date_kind is not None and self.date_kind not in DATE_KINDS:
            raise ValueError(f"date_kind must be one of {DATE_KINDS}, got {self.date_kind!r}")

    def empty_value(self) -> Any:
        """Return the empty value matching the column definition, or '' without one."""
        return empty_value_for_sql(self.sql)


@dataclass
class TableSchema:
    """Versioning configuration of one content table."""

    name: str
    enable_versioning: bool = False
    fields: Dict[str, FieldDescriptor] = field(default_factory=dict)
    order_fields: Set[str] = field(default_factory=set)
    on_create_version: List[CreateVersionHook] = field(default_factory=list)
    on_restore_version: List[RestoreVersionHook] = field(default_factory=list)
    # Deprecated: use on_restore_version.
    on_restore: List[LegacyRestoreHook] = field(default_factory=list)

    def descriptor(self, field_name: str) -> FieldDescriptor:
        return self.fields.get(field_name) or FieldDescriptor()

    def is_binary(self, field_name: str) -> bool:
        """Binary UUID references: file pickers and their order fields."""
        return self.descriptor(field_name).input_type == "fileTree" or field_name in self.order_fields


def empty_value_for_sql(sql: Optional[str]) -> Any:
    """Map a column definition to the value an empty field stores.

    Nullable columns store NULL, numeric columns 0, everything else ''.
    """
    if not sql:
        return ""
    upper = sql.upper()
    if "NULL" in upper and "NOT NULL" not in upper:
        return None
    if _NUMERIC_SQL.match(sql):
        return 0
    return ""


class SchemaRegistry:
    """Lookup of table schemas by table name."""

    def __init__(self, decryptor: Optional[Decryptor] = None):
        self._schemas: Dict[str, TableSchema] = {}
        self.decryptor = decryptor

    def register(self, schema: TableSchema) -> TableSchema:
        self._schemas[schema.name] = schema
        logger.debug("Registered table schema", extra={"table": schema.name,
                                                       "versioning": schema.enable_versioning})
        return schema

    def __contains__(self, table: str) -> bool:
        return table in self._schemas

    def get(self, table: str) -> TableSchema:
        """Get a table schema. Raises UnknownTableError if the table is not registered."""
        schema = self._schemas.get(table)
        if schema is None:
            raise UnknownTableError(table)
        return schema

    def is_versioning_enabled(self, table: str) -> bool:
        schema = self._schemas.get(table)
        return bool(schema and schema.enable_versioning)

    def field_descriptors(self, table: str) -> Dict[str, FieldDescriptor]:
        return dict(self.get(table).fields)

    def order_fields(self, table: str) -> Set[str]:
        return set(self.get(table).order_fields)

    def decrypt(self, value: Any) -> Any:
        """Decrypt a stored value; values pass through when no decryptor is set."""
        if self.decryptor is None or value in (None, ""):
            return value
        return self.decryptor(value)
