"""JSON codec for version payloads.

Row values JSON has no type for are wrapped in single-key tag objects so a
snapshot decodes back to the values it was taken from:

    bytes    -> {"$bytes": "<base64>"}
    datetime -> {"$datetime": "<isoformat>"}
    date     -> {"$date": "<isoformat>"}
    time     -> {"$time": "<isoformat>"}

Decimals are stored as strings.
"""

import base64
import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Optional

_DECODERS = {
    "$bytes": lambda v: base64.b64decode(v.encode("ascii")),
    "$datetime": datetime.fromisoformat,
    "$date": date.fromisoformat,
    "$time": time.fromisoformat,
}


def _encode_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {"$bytes": base64.b64encode(bytes(value)).decode("ascii")}
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    if isinstance(value, time):
        return {"$time": value.isoformat()}
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_value(v) for v in value]
    return value


def _decode_hook(obj: Dict[str, Any]) -> Any:
    if len(obj) == 1:
        (key, raw), = obj.items()
        decoder = _DECODERS.get(key)
        if decoder is not None and isinstance(raw, str):
            return decoder(raw)
    return obj


def dump_payload(row: Dict[str, Any]) -> str:
    """Serialize a row snapshot."""
    return json.dumps(_encode_value(row), ensure_ascii=True)


def load_payload(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """Deserialize a row snapshot.

    Returns None for anything that does not decode to a mapping.
    """
    if not raw:
        return None
    try:
        data = json.loads(raw, object_hook=_decode_hook)
    except (ValueError, TypeError):
        return None
    return data if isinstance(data, dict) else None
