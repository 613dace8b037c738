"""Conversion of model trees to JSON-friendly structures."""
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any


def to_plain(value: Any) -> Any:
    """Recursively convert dataclasses, enums and dates to plain values.

    Variant classes expose a ``kind`` class attribute, which is written
    alongside their fields so the variant survives serialization.
    """
    if is_dataclass(value) and not isinstance(value, type):
        data: dict[str, Any] = {}
        kind = getattr(type(value), "kind", None)
        if kind is not None:
            data["kind"] = kind
        for f in fields(value):
            data[f.name] = to_plain(getattr(value, f.name))
        return data
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(to_plain(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if isinstance(value, Path):
        return str(value)
    return value
