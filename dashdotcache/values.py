"""Cached values, entries, expiry and statistics."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping, Optional

# Estimated fixed sizes, in bytes, of the containers and of an entry record.
_INT_SIZE = 8
_FLOAT_SIZE = 8
_HASH_OVERHEAD = 48
_LIST_OVERHEAD = 24
_SET_OVERHEAD = 48
_ENTRY_OVERHEAD = 160


def _str_size(text: str) -> int:
    return len(text.encode("utf-8"))


def type_name(value: Any) -> str:
    """Return the name of the kind of cached value."""
    if isinstance(value, bool):
        raise TypeError("unsupported value type: bool")
    if isinstance(value, str):
        return "string"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, (bytes, bytearray)):
        return "bytes"
    if isinstance(value, dict):
        return "hash"
    if isinstance(value, list):
        return "list"
    if isinstance(value, (set, frozenset)):
        return "set"
    raise TypeError(f"unsupported value type: {type(value).__name__}")


def _format_float(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    text = format(Decimal(repr(number)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_value(value: Any) -> str:
    """Render a value the way it is shown to clients."""
    kind = type_name(value)
    if kind == "string":
        return value
    if kind == "integer":
        return str(value)
    if kind == "float":
        return _format_float(value)
    if kind == "bytes":
        return f"{len(value)} bytes"
    if kind == "hash":
        return f"hash with {len(value)} fields"
    if kind == "list":
        return f"list with {len(value)} items"
    return f"set with {len(value)} members"


def value_memory_usage(value: Any) -> int:
    """Estimate the bytes a value occupies."""
    kind = type_name(value)
    if kind == "string":
        return _str_size(value)
    if kind == "integer":
        return _INT_SIZE
    if kind == "float":
        return _FLOAT_SIZE
    if kind == "bytes":
        return len(value)
    if kind == "hash":
        return _HASH_OVERHEAD + sum(
            _str_size(k) + value_memory_usage(v) for k, v in value.items()
        )
    if kind == "list":
        return _LIST_OVERHEAD + sum(value_memory_usage(v) for v in value)
    return _SET_OVERHEAD + sum(_str_size(member) for member in value)


@dataclass
class Ttl:
    """An expiry deadline; a sliding one is pushed back on every access."""

    duration: float
    is_sliding: bool = False
    expires_at: float = field(init=False)

    def __post_init__(self) -> None:
        self.expires_at = time.monotonic() + self.duration

    @classmethod
    def sliding(cls, duration: float) -> "Ttl":
        """Create a deadline that resets on each access."""
        return cls(duration, is_sliding=True)

    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def reset(self) -> None:
        """Push the deadline back by the full duration if sliding."""
        if self.is_sliding:
            self.expires_at = time.monotonic() + self.duration

    def remaining(self) -> Optional[float]:
        """Seconds left before expiry, or None once expired."""
        left = self.expires_at - time.monotonic()
        return left if left > 0 else None


@dataclass
class Entry:
    """A stored value with its expiry, parent link and access record."""

    value: Any
    ttl: Optional[Ttl] = None
    parent: Optional[str] = None
    access_count: int = 0
    last_accessed: float = field(default_factory=time.monotonic)
    created_at: float = field(default_factory=time.monotonic)

    def is_valid(self, data: Mapping[str, "Entry"]) -> bool:
        """True unless this entry or any ancestor has expired or vanished."""
        seen: set[int] = set()
        entry: Entry = self
        while True:
            if id(entry) in seen:
                return False
            seen.add(id(entry))
            if entry.ttl is not None and entry.ttl.is_expired():
                return False
            if entry.parent is None:
                return True
            parent_entry = data.get(entry.parent)
            if parent_entry is None:
                return False
            entry = parent_entry

    def mark_accessed(self) -> None:
        self.access_count += 1
        self.last_accessed = time.monotonic()
        if self.ttl is not None:
            self.ttl.reset()

    def memory_usage(self) -> int:
        size = _ENTRY_OVERHEAD + value_memory_usage(self.value)
        if self.parent is not None:
            size += _str_size(self.parent)
        return size


_METRICS = (
    ("hits", "cache_hits_total", "Total number of cache hits", "counter"),
    ("misses", "cache_misses_total", "Total number of cache misses", "counter"),
    ("sets", "cache_sets_total", "Total number of SET operations", "counter"),
    ("deletes", "cache_deletes_total", "Total number of DELETE operations", "counter"),
    (
        "memory_usage",
        "cache_memory_usage_bytes",
        "Current estimated memory usage in bytes",
        "gauge",
    ),
)


@dataclass
class Stats:
    """Operation counters and the memory gauge of a cache."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    memory_usage: int = 0

    def render(self) -> str:
        """Render every metric in Prometheus text format."""
        lines = []
        for attr, name, help_text, kind in _METRICS:
            lines.append(f"# HELP {name} {help_text}\n")
            lines.append(f"# TYPE {name} {kind}\n")
            lines.append(f"{name} {getattr(self, attr)}\n")
        return "".join(lines)