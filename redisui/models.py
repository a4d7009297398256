"""Shared dataclasses used across gateway/scan/bridge modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class KeyType(str, Enum):
    """Redis data types the client can read and write."""

    STRING = "string"
    LIST = "list"
    SET = "set"
    ZSET = "zset"
    HASH = "hash"


@dataclass(frozen=True, slots=True)
class ConnectionProfile:
    """Runtime representation of a connection profile."""

    name: str
    host: str = "localhost"
    port: int = 6379
    username: str | None = None
    password: str | None = None


@dataclass(frozen=True, slots=True)
class ZSetMember:
    """Sorted set entry."""

    member: str
    score: float


@dataclass(frozen=True, slots=True)
class StringValue:
    payload: str
    kind: KeyType = field(default=KeyType.STRING, init=False)


@dataclass(frozen=True, slots=True)
class ListValue:
    payload: tuple[str, ...]
    kind: KeyType = field(default=KeyType.LIST, init=False)


@dataclass(frozen=True, slots=True)
class SetValue:
    payload: tuple[str, ...]
    kind: KeyType = field(default=KeyType.SET, init=False)


@dataclass(frozen=True, slots=True)
class ZSetValue:
    payload: tuple[ZSetMember, ...]
    kind: KeyType = field(default=KeyType.ZSET, init=False)


@dataclass(frozen=True, slots=True)
class HashValue:
    payload: Mapping[str, str]
    kind: KeyType = field(default=KeyType.HASH, init=False)


KeyValue = StringValue | ListValue | SetValue | ZSetValue | HashValue


@dataclass(frozen=True, slots=True)
class KeyDetail:
    """Typed value plus TTL/memory bookkeeping for a single key."""

    key: str
    value: KeyValue
    ttl: int
    memory_bytes: int | None = None

    @property
    def type(self) -> KeyType:
        return self.value.kind


@dataclass(frozen=True, slots=True)
class ScanPage:
    """One SCAN reply: continuation cursor plus the keys it returned."""

    cursor: str
    keys: tuple[str, ...]


def value_to_data(value: KeyValue) -> object:
    """Plain JSON-friendly rendition of a tagged value."""

    if isinstance(value, ZSetValue):
        return [{"member": entry.member, "score": entry.score} for entry in value.payload]
    if isinstance(value, HashValue):
        return dict(value.payload)
    if isinstance(value, (ListValue, SetValue)):
        return list(value.payload)
    return value.payload


__all__ = [
    "ConnectionProfile",
    "HashValue",
    "KeyDetail",
    "KeyType",
    "KeyValue",
    "ListValue",
    "ScanPage",
    "SetValue",
    "StringValue",
    "ZSetMember",
    "ZSetValue",
    "value_to_data",
]
