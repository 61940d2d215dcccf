"""Row store over the content tables that get versioned.

Content tables are not mapped; they are reflected from the database on
first use so the store works with whatever columns a table has now.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, MetaData, Numeric, Integer, Table, func, select, update
from sqlalchemy.orm import Session

from ..registry import FieldDescriptor

PRIMARY_KEY = "id"


class RowRepository:
    """Read and write rows of arbitrary content tables by primary key."""

    def __init__(self, db: Session):
        self.db = db
        self._metadata = MetaData()

    def table(self, name: str) -> Table:
        """Reflect a table. Raises NoSuchTableError if it does not exist."""
        if name in self._metadata.tables:
            return self._metadata.tables[name]
        return Table(name, self._metadata, autoload_with=self.db.connection())

    def get(self, table: str, record_id: int) -> Optional[Dict[str, Any]]:
        """Return the row as a plain dict, None if it does not exist."""
        t = self.table(table)
        row = self.db.execute(
            select(t).where(t.c[PRIMARY_KEY] == record_id).limit(1)
        ).mappings().first()
        return dict(row) if row is not None else None

    def set(self, table: str, record_id: int, fields: Dict[str, Any]) -> int:
        """Overwrite the given columns of a row. Unknown columns are ignored."""
        t = self.table(table)
        values = {k: v for k, v in fields.items() if k in t.c and k != PRIMARY_KEY}
        if not values:
            return 0
        result = self.db.execute(
            update(t).where(t.c[PRIMARY_KEY] == record_id).values(**values)
        )
        return result.rowcount

    def field_names(self, table: str) -> List[str]:
        return [column.name for column in self.table(table).columns]

    def exists(self, table: str, record_id: int) -> bool:
        """Raises NoSuchTableError for tables that are gone."""
        t = self.table(table)
        count = self.db.execute(
            select(func.count()).select_from(t).where(t.c[PRIMARY_KEY] == record_id)
        ).scalar()
        return bool(count)

    def empty_value(self, table: str, field: str, descriptor: Optional[FieldDescriptor] = None) -> Any:
        """Value a field gets when a restored snapshot predates the field.

        The registered column definition wins; otherwise the reflected column
        decides: nullable -> None, numeric -> 0, anything else -> ''.
        """
        if descriptor is not None and descriptor.sql:
            return descriptor.empty_value()

        column = self.table(table).c.get(field)
        if column is None:
            return ""
        if column.nullable and not column.primary_key:
            return None
        if isinstance(column.type, (Integer, Numeric, Boolean)):
            return 0
        return ""
