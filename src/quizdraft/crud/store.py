"""Document store interface and record hygiene helpers

Records are JSON-like nested dicts keyed by quiz id. Stores reject records that
still carry the UNDEFINED sentinel, so callers strip it before writing.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any

from quizdraft.errors import InvalidRecordError


class _Undefined:
    """Marks a field the caller has no value for; never storable."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()

Record = dict[str, Any]


class DocumentStore(ABC):
    @abstractmethod
    async def get(self, doc_id: str) -> Record | None:
        """Return a copy of the stored record, or None when missing."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, doc_id: str, record: Record, merge: bool = True) -> None:
        """Write record; with merge, nested dicts are merged into the existing record."""
        raise NotImplementedError

    @abstractmethod
    async def query(self, owner_id: str, is_published: bool | None = None) -> list[Record]:
        raise NotImplementedError


def strip_undefined(value: Any) -> Any:
    """Drop UNDEFINED dict entries recursively; list elements become None."""
    if isinstance(value, dict):
        return {k: strip_undefined(v) for k, v in value.items() if v is not UNDEFINED}
    if isinstance(value, (list, tuple)):
        return [None if v is UNDEFINED else strip_undefined(v) for v in value]
    return value


def check_record(record: Any, path: str = "") -> None:
    """Raise InvalidRecordError unless record is plain JSON (no UNDEFINED, no NaN)."""
    if record is UNDEFINED:
        raise InvalidRecordError(f"Undefined value at {path or '<root>'}")
    if isinstance(record, dict):
        for k, v in record.items():
            if not isinstance(k, str):
                raise InvalidRecordError(f"Non-string key {k!r} at {path or '<root>'}")
            check_record(v, f"{path}.{k}" if path else k)
    elif isinstance(record, list):
        for i, v in enumerate(record):
            check_record(v, f"{path}[{i}]")
    elif isinstance(record, float) and not math.isfinite(record):
        raise InvalidRecordError(f"Non-finite number at {path}")
    elif record is not None and not isinstance(record, (str, int, float, bool)):
        raise InvalidRecordError(f"Unsupported {type(record).__name__} at {path}")


def deep_merge(base: Record, update: Record) -> Record:
    """New dict: update's keys win; nested dicts merge; lists and scalars replace."""
    merged = dict(base)
    for k, v in update.items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k] = deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged
