"""
JSON field readers for aggregate documents.

Stored documents use camelCase keys, ISO-8601 timestamps and integer
seconds. Readers raise `TypeError`/`KeyError`/`ValueError` on bad shape,
which the aggregate repository turns into the aggregate's default.
Optional fields fall back to the given default when absent or null.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Naive local wall-clock time, the timestamps the store was written with."""
    return datetime.now()


def new_id() -> str:
    return uuid.uuid4().hex


def require_str(data: Mapping[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def optional_str(data: Mapping[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def optional_int(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"'{key}' must be an integer, got {type(value).__name__}")
    return value


def parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def require_datetime(data: Mapping[str, Any], key: str) -> datetime:
    return parse_datetime(require_str(data, key))


def optional_datetime(data: Mapping[str, Any], key: str) -> Optional[datetime]:
    value = optional_str(data, key)
    return parse_datetime(value) if value is not None else None


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def require_list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"'{key}' must be a list, got {type(value).__name__}")
    return value
