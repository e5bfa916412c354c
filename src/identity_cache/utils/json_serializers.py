"""Shared JSON serialization utilities for type-safe JSON encoding."""

from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any


def json_serializer(obj: Any) -> Any:
    """
    Type-safe JSON serializer for structured log records.

    - datetime/date -> ISO 8601 string
    - Enum -> value
    - set/frozenset -> sorted list (stable output for credential filters)
    - Path -> string
    - Everything else -> string (fallback)

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(item.value if isinstance(item, Enum) else str(item) for item in obj)
    if isinstance(obj, Path):
        return str(obj)
    return str(obj)


__all__ = ["json_serializer"]
