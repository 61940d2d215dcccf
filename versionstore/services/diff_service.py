"""Field-level comparison of two version payloads.

Each changed field is normalised into display lines (decrypted, dates
formatted, multi-value fields flattened, entities decoded) and rendered as
one HTML diff table built from ``difflib`` opcodes.
"""

import difflib
import html
import logging
import re
from datetime import date, datetime, time
from typing import Any, Dict, List

from .. import lang
from ..core.config import Settings
from ..registry import SchemaRegistry, TableSchema
from ..utils.text import bin_to_uuid, decode_entities, implode_recursive, is_binary_uuid, maybe_structured

logger = logging.getLogger(__name__)

TIMESTAMP_FIELD = "tstamp"


def _loose(value: Any) -> Any:
    """Normalise scalars so '1' equals 1 and None equals ''."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


def values_differ(old: Any, new: Any) -> bool:
    if isinstance(old, (list, dict)) or isinstance(new, (list, dict)):
        return old != new
    return _loose(old) != _loose(new)


def format_date(value: Any, fmt: str) -> str:
    """Format a unix timestamp (or date object) for display. Empty values give ''."""
    if value in (None, "", 0, "0"):
        return ""
    if isinstance(value, datetime):
        return value.strftime(fmt)
    if isinstance(value, date):
        return datetime.combine(value, time()).strftime(fmt)
    if isinstance(value, time):
        return datetime.combine(date.today(), value).strftime(fmt)
    try:
        return datetime.fromtimestamp(int(value)).strftime(fmt)
    except (TypeError, ValueError, OverflowError, OSError):
        return str(value)


def to_lines(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return ["" if v is None else str(v) for v in value]
    if isinstance(value, dict):
        return implode_recursive(value).split("\n")
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    return ("" if value is None else str(value)).split("\n")


class DiffRenderer:
    """Render two line sequences as an HTML diff table."""

    def __init__(self, field: str):
        self.field = field

    def render(self, old: List[str], new: List[str]) -> str:
        rows = []
        matcher = difflib.SequenceMatcher(None, old, new, autojunk=False)
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                rows.extend(self._row("equal", " ", line) for line in old[i1:i2])
                continue
            if tag in ("delete", "replace"):
                rows.extend(self._row("del", "-", f"<del>{html.escape(line)}</del>", escaped=True)
                            for line in old[i1:i2])
            if tag in ("insert", "replace"):
                rows.extend(self._row("ins", "+", f"<ins>{html.escape(line)}</ins>", escaped=True)
                            for line in new[j1:j2])

        return (
            '<table class="diff">\n'
            f'<thead><tr><th colspan="2">{html.escape(self.field)}</th></tr></thead>\n'
            "<tbody>\n" + "".join(rows) + "</tbody>\n"
            "</table>\n"
        )

    @staticmethod
    def _row(css: str, sign: str, line: str, escaped: bool = False) -> str:
        content = line if escaped else html.escape(line)
        return f'<tr class="{css}"><td class="sign">{sign}</td><td>{content}</td></tr>\n'


class FieldDiffer:
    """Normalises and renders the changed fields of two payloads of one table."""

    def __init__(self, registry: SchemaRegistry, schema: TableSchema, settings: Settings):
        self.registry = registry
        self.schema = schema
        self.settings = settings

    def label(self, key: str) -> str:
        descriptor = self.schema.fields.get(key)
        if descriptor is not None and descriptor.label:
            return descriptor.label
        return lang.field_label(key)

    def _normalise(self, key: str, value: Any) -> Any:
        descriptor = self.schema.descriptor(key)
        binary = self.schema.is_binary(key)

        if descriptor.encrypted:
            if self.registry.decryptor is None:
                logger.warning("No decryptor configured for encrypted field", extra={"table": self.schema.name,
                                                                                    "field": key})
            value = self.registry.decrypt(value)

        if descriptor.multiple:
            if descriptor.delimiter:
                if isinstance(value, str):
                    value = re.sub(re.escape(descriptor.delimiter), descriptor.delimiter + " ", value)
            else:
                structured = maybe_structured(value)
                if isinstance(structured, (list, dict)):
                    value = implode_recursive(structured, binary)

        if binary and is_binary_uuid(value):
            value = bin_to_uuid(value)

        if descriptor.date_kind == "date":
            value = format_date(value, self.settings.date_format)
        elif descriptor.date_kind == "time":
            value = format_date(value, self.settings.time_format)
        elif descriptor.date_kind == "datim" or key == TIMESTAMP_FIELD:
            value = format_date(value, self.settings.datim_format)

        if not descriptor.decode_entities:
            value = decode_entities(value)

        return to_lines(value)

    def diff(self, old: Dict[str, Any], new: Dict[str, Any]) -> str:
        """Render a block per field of ``new`` whose value differs in ``old``.

        Returns '' when no visible field changed.
        """
        buffer = []
        for key, new_value in new.items():
            old_value = old.get(key)
            if not values_differ(old_value, new_value):
                continue
            if self.schema.descriptor(key).hidden:
                continue

            old_lines = self._normalise(key, old_value)
            new_lines = self._normalise(key, new_value)
            buffer.append(DiffRenderer(self.label(key)).render(old_lines, new_lines))

        return "".join(buffer)
