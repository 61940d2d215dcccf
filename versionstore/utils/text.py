"""String helpers shared by the compare and audit views."""

import html
import json
import uuid
from typing import Any

ELLIPSIS = " …"


def truncate(text: str, length: int, ellipsis: str = ELLIPSIS) -> str:
    """Shorten text to at most ``length`` characters on a word boundary.

    A single word longer than ``length`` is cut hard.
    """
    text = text or ""
    if len(text) <= length:
        return text

    kept = []
    size = 0
    for word in text.split():
        added = len(word) + (1 if kept else 0)
        if size + added > length:
            break
        kept.append(word)
        size += added

    if not kept:
        return text[:length] + ellipsis
    return " ".join(kept) + ellipsis


def is_binary_uuid(value: Any) -> bool:
    return isinstance(value, (bytes, bytearray)) and len(value) == 16


def bin_to_uuid(value: Any) -> str:
    """Render a 16-byte identifier as canonical UUID text."""
    if not value:
        return ""
    if is_binary_uuid(value):
        return str(uuid.UUID(bytes=bytes(value)))
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def decode_entities(value: Any) -> Any:
    """Unescape HTML entities in strings; other values pass through."""
    if isinstance(value, str):
        return html.unescape(value)
    if isinstance(value, list):
        return [decode_entities(v) for v in value]
    return value


def maybe_structured(value: Any) -> Any:
    """Return the list/dict a JSON-encoded string holds, else the value itself."""
    if isinstance(value, (list, dict)):
        return value
    if isinstance(value, (str, bytes)) and value[:1] in ("[", "{", b"[", b"{"):
        try:
            parsed = json.loads(value)
        except ValueError:
            return value
        if isinstance(parsed, (list, dict)):
            return parsed
    return value


def implode_recursive(value: Any, binary: bool = False) -> str:
    """Flatten a nested list/dict into display text.

    Flat lists are comma-joined; nested mappings become one
    ``key: value`` line per entry.
    """
    if not isinstance(value, (list, dict)):
        if binary:
            return bin_to_uuid(value)
        return "" if value is None else str(value)

    items = list(value.items()) if isinstance(value, dict) else list(enumerate(value))
    if not items:
        return ""

    if not isinstance(items[0][1], (list, dict)):
        if binary:
            return ", ".join(bin_to_uuid(v) if v else "" for _, v in items)
        return ", ".join("" if v is None else str(v) for _, v in items)

    lines = [f"{k}: {implode_recursive(v)}" for k, v in items]
    return "\n".join(lines).strip()
