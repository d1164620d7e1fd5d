"""Commands against a cache and the executor that runs them."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Union

from dashdotcache.cache import Cache, SetOptions
from dashdotcache.errors import CacheError
from dashdotcache.values import format_value


@dataclass(frozen=True)
class Get:
    key: str


@dataclass(frozen=True)
class Set:
    key: str
    value: str
    options: SetOptions = field(default_factory=SetOptions)


@dataclass(frozen=True)
class Del:
    keys: tuple[str, ...] | list[str]


@dataclass(frozen=True)
class Expire:
    key: str
    seconds: int


@dataclass(frozen=True)
class TtlQuery:
    key: str


@dataclass(frozen=True)
class Persist:
    key: str


@dataclass(frozen=True)
class Exists:
    keys: tuple[str, ...] | list[str]


@dataclass(frozen=True)
class Ping:
    message: Optional[str] = None


@dataclass(frozen=True)
class ListKeys:
    pattern: str = "*"
    limit: Optional[int] = None


@dataclass(frozen=True)
class FlushAll:
    pass


@dataclass(frozen=True)
class SetParent:
    key: str
    parent: str


@dataclass(frozen=True)
class GetParent:
    key: str


@dataclass(frozen=True)
class GetChildren:
    parent: str
    depth: Optional[int] = None


@dataclass(frozen=True)
class GetInfo:
    key: str


Command = Union[
    Get,
    Set,
    Del,
    Expire,
    TtlQuery,
    Persist,
    Exists,
    Ping,
    ListKeys,
    FlushAll,
    SetParent,
    GetParent,
    GetChildren,
    GetInfo,
]


@dataclass
class KeyInfo:
    """A summary of one key: liveness, expiry, value and relations."""

    key: str
    exists: bool
    ttl: int
    value: Optional[str]
    parent: Optional[str]
    children_count: int


class ResponseKind(Enum):
    OK = auto()
    VALUE = auto()
    INTEGER = auto()
    ARRAY = auto()
    ARRAY_WITH_DEPTH = auto()
    KEY_INFO = auto()
    NULL = auto()
    ERROR = auto()


@dataclass(frozen=True)
class CommandResponse:
    """The outcome of a command: its kind and the data that goes with it."""

    kind: ResponseKind
    data: Any = None


_OK = CommandResponse(ResponseKind.OK)
_NULL = CommandResponse(ResponseKind.NULL)


def _value(text: str) -> CommandResponse:
    return CommandResponse(ResponseKind.VALUE, text)


def _integer(number: int) -> CommandResponse:
    return CommandResponse(ResponseKind.INTEGER, number)


def _error(message: str) -> CommandResponse:
    return CommandResponse(ResponseKind.ERROR, message)


class CommandExecutor:
    """Runs commands against a shared cache."""

    def __init__(self, cache: Cache) -> None:
        self.cache = cache

    def execute(self, command: Command) -> CommandResponse:
        cache = self.cache
        match command:
            case Get(key=key):
                value = cache.get(key)
                return _NULL if value is None else _value(format_value(value))

            case Set(key=key, value=value, options=options):
                try:
                    written = cache.set(key, value, options)
                except CacheError:
                    return _error("SET failed")
                return _OK if written else _NULL

            case Del(keys=keys):
                return _integer(cache.delete_many(keys))

            case Exists(keys=keys):
                return _integer(cache.exists_many(keys))

            case Ping(message=message):
                return _value("PONG" if message is None else message)

            case TtlQuery(key=key):
                return _integer(cache.ttl(key))

            case Expire(key=key, seconds=seconds):
                return _integer(cache.expire(key, seconds))

            case Persist(key=key):
                return _integer(cache.persist(key))

            case SetParent(key=key, parent=parent):
                try:
                    return _integer(cache.set_parent(key, parent))
                except CacheError as exc:
                    return _error(str(exc))

            case GetParent(key=key):
                parent = cache.parent(key)
                return _NULL if parent is None else _value(parent)

            case GetChildren(parent=parent, depth=depth):
                max_depth = 1 if depth is None else depth
                return CommandResponse(
                    ResponseKind.ARRAY_WITH_DEPTH,
                    cache.children_recursive(parent, max_depth),
                )

            case ListKeys(pattern=pattern, limit=limit):
                return CommandResponse(ResponseKind.ARRAY, cache.keys(pattern, limit))

            case GetInfo(key=key):
                exists = cache.exists(key)
                ttl = cache.ttl(key)
                value = cache.get(key)
                info = KeyInfo(
                    key=key,
                    exists=exists,
                    ttl=ttl,
                    value=None if value is None else format_value(value),
                    parent=cache.parent(key),
                    children_count=len(cache.children_recursive(key, sys.maxsize)),
                )
                return CommandResponse(ResponseKind.KEY_INFO, info)

            case FlushAll():
                cache.flush_all()
                return _OK

        raise TypeError(f"unknown command: {type(command).__name__}")