"""Exceptions raised by cache operations."""

from __future__ import annotations


class CacheError(Exception):
    """Base class for every error a cache operation reports."""


class DependenciesDisabledError(CacheError):
    """A parent was given while dependencies are switched off."""

    def __init__(self) -> None:
        super().__init__("Dependencies are disabled in the cache configuration.")


class ParentNotFoundError(CacheError):
    """The named parent key is not in the cache."""

    def __init__(self, parent: str) -> None:
        self.parent = parent
        super().__init__(f"Parent key '{parent}' does not exist.")


class DependencyCycleError(CacheError):
    """Linking the key to the parent would close a dependency cycle."""

    def __init__(self, key: str, parent: str) -> None:
        self.key = key
        self.parent = parent
        super().__init__(
            f"Setting parent '{parent}' for key '{key}' would create a dependency cycle."
        )


class MemoryLimitExceededError(CacheError):
    """The write would push estimated memory past the configured limit."""

    def __init__(self) -> None:
        super().__init__("Memory limit exceeded.")


class KeyLimitExceededError(CacheError):
    """The write would push the key count past the configured limit."""

    def __init__(self) -> None:
        super().__init__("Key count limit exceeded.")