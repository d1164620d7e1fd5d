"""A thread-safe in-memory key/value cache with expiry and parent dependencies."""

from __future__ import annotations

import logging
import threading
import zlib
from dataclasses import dataclass
from itertools import islice
from typing import Any, Iterable, Optional

from dashdotcache.errors import (
    DependenciesDisabledError,
    DependencyCycleError,
    KeyLimitExceededError,
    MemoryLimitExceededError,
    ParentNotFoundError,
)
from dashdotcache.values import Entry, Stats, Ttl

logger = logging.getLogger(__name__)

# Estimated fixed footprint of an empty cache, in bytes.
_BASE_MEMORY = 128
# Number of entries examined per cleanup pass.
_CLEANUP_SAMPLES = 20


def _key_size(key: str) -> int:
    return len(key.encode("utf-8"))


@dataclass
class Config:
    """Limits and switches of a cache."""

    max_memory: Optional[int] = None
    max_keys: Optional[int] = None
    enable_dependencies: bool = True
    ttl_cleanup_interval: float = 60.0


@dataclass
class SetOptions:
    """Options of a write: expiry in seconds, parent key and NX/XX conditions."""

    ttl: Optional[float] = None
    parent: Optional[str] = None
    nx: bool = False
    xx: bool = False


def matches_pattern(key: str, pattern: str) -> bool:
    """Match ``key`` against ``*``, a ``prefix*`` pattern or an exact key."""
    if pattern == "*":
        return True
    if pattern.endswith("*"):
        return key.startswith(pattern[:-1])
    return key == pattern


class Cache:
    """Key/value store whose entries may expire or depend on a parent entry."""

    shard_count = 16

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config if config is not None else Config()
        self._data: dict[str, Entry] = {}
        self._stats = Stats(memory_usage=_BASE_MEMORY)
        self._cleanup_counter = 0
        self._lock = threading.RLock()

    @property
    def stats(self) -> Stats:
        return self._stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def memory_usage(self) -> int:
        """Current estimated memory usage in bytes."""
        return self._stats.memory_usage

    def get(self, key: str) -> Any:
        """Return the live value of ``key``, or None; dead entries are dropped."""
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            if not entry.is_valid(self._data):
                self._stats.misses += 1
                del self._data[key]
                return None
            entry.mark_accessed()
            self._stats.hits += 1
            return entry.value

    def ttl(self, key: str) -> int:
        """Whole seconds left; -1 when the key has no expiry, -2 when absent or expired."""
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return -2
            if entry.ttl is None:
                return -1
            left = entry.ttl.remaining()
            return -2 if left is None else int(left)

    def set(self, key: str, value: Any, options: Optional[SetOptions] = None) -> bool:
        """Store ``value``; False when an NX/XX condition prevents the write."""
        options = options if options is not None else SetOptions()
        with self._lock:
            exists = key in self._data
            if options.nx and exists:
                return False
            if options.xx and not exists:
                return False

            if options.parent is not None:
                if not self.config.enable_dependencies:
                    raise DependenciesDisabledError()
                if options.parent not in self._data:
                    raise ParentNotFoundError(options.parent)
                if self._would_create_cycle(key, options.parent):
                    raise DependencyCycleError(key, options.parent)

            entry = Entry(
                value,
                ttl=Ttl(options.ttl) if options.ttl is not None else None,
                parent=options.parent,
            )
            self._insert_entry(key, entry)
            logger.debug("Inserted key %s", key)
            return True

    def expire(self, key: str, seconds: float) -> int:
        """Give ``key`` a fresh expiry; 1 if it exists, else 0."""
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return 0
            entry.ttl = Ttl(seconds)
            return 1

    def persist(self, key: str) -> int:
        """Remove the expiry of ``key``; 1 if it exists, else 0."""
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return 0
            entry.ttl = None
            return 1

    def delete_many(self, keys: Iterable[str]) -> int:
        """Remove the given keys and return how many were present."""
        deleted = 0
        freed = 0
        with self._lock:
            for key in keys:
                entry = self._data.pop(key, None)
                if entry is not None:
                    deleted += 1
                    freed += _key_size(key) + entry.memory_usage()
            self._stats.deletes += deleted
            self._stats.memory_usage -= freed
        return deleted

    def delete(self, key: str) -> bool:
        return self.delete_many([key]) == 1

    def exists(self, key: str) -> bool:
        """True if ``key`` is present and neither it nor an ancestor is dead."""
        with self._lock:
            entry = self._data.get(key)
            return entry is not None and entry.is_valid(self._data)

    def exists_many(self, keys: Iterable[str]) -> int:
        return sum(1 for key in keys if self.exists(key))

    def keys(self, pattern: str = "*", limit: Optional[int] = None) -> list[str]:
        """Keys matching ``pattern``, at most ``limit`` of them. Scans everything."""
        with self._lock:
            matching = (key for key in self._data if matches_pattern(key, pattern))
            return list(islice(matching, limit))

    def parent(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._data.get(key)
            return entry.parent if entry is not None else None

    def set_parent(self, key: str, parent: str) -> int:
        """Link ``key`` to ``parent``; 1 if the key exists, else 0."""
        with self._lock:
            if parent not in self._data:
                raise ParentNotFoundError(parent)
            if self._would_create_cycle(key, parent):
                raise DependencyCycleError(key, parent)
            entry = self._data.get(key)
            if entry is None:
                return 0
            entry.parent = parent
            return 1

    def children_recursive(
        self, parent_key: str, max_depth: int
    ) -> list[tuple[str, int]]:
        """Descendants of ``parent_key`` with their depth, down to ``max_depth``."""
        result: list[tuple[str, int]] = []
        with self._lock:
            current = {parent_key}
            depth = 1
            while current and depth <= max_depth:
                found = [
                    key
                    for key, entry in self._data.items()
                    if entry.parent is not None and entry.parent in current
                ]
                result.extend((key, depth) for key in found)
                current = set(found)
                depth += 1
        return result

    def flush_all(self) -> None:
        with self._lock:
            self._data.clear()
            self._stats.memory_usage = 0

    def cleanup_expired(self) -> int:
        """Sample one shard of keys in round robin and delete the expired ones."""
        with self._lock:
            counter = self._cleanup_counter
            self._cleanup_counter += 1
            shard = counter % self.shard_count
            shard_keys = [key for key in self._data if self._shard_of(key) == shard]
            if not shard_keys:
                return 0
            size = len(shard_keys)
            if size < _CLEANUP_SAMPLES:
                sample = shard_keys
            else:
                offset = counter * 7 % (size - _CLEANUP_SAMPLES + 1)
                sample = shard_keys[offset : offset + _CLEANUP_SAMPLES]
            expired = [
                key
                for key in sample
                if (ttl := self._data[key].ttl) is not None and ttl.is_expired()
            ]
            return self.delete_many(expired)

    def _shard_of(self, key: str) -> int:
        return zlib.crc32(key.encode("utf-8")) % self.shard_count

    def _would_create_cycle(self, key: str, parent: str) -> bool:
        if key == parent:
            return True
        visited: set[str] = set()
        current: Optional[str] = parent
        while current is not None:
            if current == key or current in visited:
                return True
            visited.add(current)
            entry = self._data.get(current)
            current = entry.parent if entry is not None else None
        return False

    def _insert_entry(self, key: str, entry: Entry) -> None:
        delta = _key_size(key) + entry.memory_usage()
        max_memory = self.config.max_memory
        if max_memory is not None and self.memory_usage() + delta > max_memory:
            raise MemoryLimitExceededError()
        max_keys = self.config.max_keys
        if (
            max_keys is not None
            and len(self._data) >= max_keys
            and key not in self._data
        ):
            raise KeyLimitExceededError()
        self._data[key] = entry
        self._stats.sets += 1
        self._stats.memory_usage += delta