from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime, timezone
import math
import re
from typing import Any, Iterable, Mapping

from firestore_reader.paths import RESOURCE_NAME_PATTERN


_TIMESTAMP_PATTERN = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<fraction>\d+))?(?P<offset>Z|[+-]\d{2}:\d{2})$"
)
_SPECIAL_DOUBLES = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC3339 timestamp; nanosecond precision is truncated to microseconds."""

    match = _TIMESTAMP_PATTERN.match(raw.strip())
    if match is None:
        raise ValueError(f"Invalid timestamp format: {raw}")
    fraction = (match.group("fraction") or "0")[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset == "Z":
        offset = "+00:00"
    return datetime.fromisoformat(f"{match.group('base')}.{fraction}{offset}")


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def unwrap_value(value: Mapping[str, Any]) -> Any:
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        raw = value["doubleValue"]
        if isinstance(raw, str) and raw in _SPECIAL_DOUBLES:
            return _SPECIAL_DOUBLES[raw]
        return float(raw)
    if "timestampValue" in value:
        return parse_timestamp(str(value["timestampValue"]))
    if "stringValue" in value:
        return value["stringValue"]
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "referenceValue" in value:
        reference = str(value["referenceValue"])
        match = RESOURCE_NAME_PATTERN.match(reference)
        return match.group(1) if match else reference
    if "geoPointValue" in value:
        point = value["geoPointValue"] or {}
        return GeoPoint(
            latitude=float(point.get("latitude", 0.0)),
            longitude=float(point.get("longitude", 0.0)),
        )
    if "arrayValue" in value:
        values = (value["arrayValue"] or {}).get("values") or []
        return [unwrap_value(item) for item in values]
    if "mapValue" in value:
        fields = (value["mapValue"] or {}).get("fields") or {}
        return {key: unwrap_value(item) for key, item in fields.items()}
    raise ValueError(f"Unsupported Firestore value: {sorted(value)}")


def wrap_value(value: Any) -> dict[str, Any]:
    """Encode a Python value for use as a query filter operand."""

    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        if math.isnan(value):
            return {"doubleValue": "NaN"}
        if math.isinf(value):
            return {"doubleValue": "Infinity" if value > 0 else "-Infinity"}
        return {"doubleValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (bytes, bytearray)):
        return {"bytesValue": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, GeoPoint):
        return {"geoPointValue": {"latitude": value.latitude, "longitude": value.longitude}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [wrap_value(item) for item in value]}}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": {str(key): wrap_value(item) for key, item in value.items()}}}
    raise TypeError(f"Unsupported Firestore value type: {type(value).__name__}")


def unwrap_document_fields(document: Mapping[str, Any]) -> dict[str, Any]:
    fields = document.get("fields") or {}
    return {key: unwrap_value(value) for key, value in fields.items()}


def unwrap_batch_documents(
    response: Iterable[Mapping[str, Any]],
    names: list[str] | None = None,
) -> list[dict[str, Any] | None]:
    """Unwrap a ``batchGet`` response.

    Every ``found`` entry becomes a plain mapping and every ``missing`` entry becomes
    ``None``. The service does not promise to answer in request order, so when
    ``names`` is given the result is rearranged to line up with it; a requested name
    absent from the response also yields ``None``.
    """

    by_name: dict[str, dict[str, Any] | None] = {}
    ordered: list[dict[str, Any] | None] = []
    for item in response:
        found = item.get("found")
        if found is not None:
            name = str(found.get("name", ""))
            unwrapped: dict[str, Any] | None = unwrap_document_fields(found)
        elif "missing" in item:
            name = str(item["missing"])
            unwrapped = None
        else:
            # transaction/readTime-only entries
            continue
        by_name[name] = unwrapped
        ordered.append(unwrapped)

    if names is None:
        return ordered
    return [by_name.get(name) for name in names]
