"""Store gateways: the single live connection the rest of the app talks through."""

from __future__ import annotations

import bisect
import fnmatch
import logging
import math
import time
from typing import Callable, Mapping, Protocol, Sequence, runtime_checkable

import redis.asyncio as aioredis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError, ResponseError

from .errors import ConnectError, NotConnectedError, UpstreamError
from .models import (
    ConnectionProfile,
    HashValue,
    KeyDetail,
    KeyType,
    KeyValue,
    ListValue,
    ScanPage,
    SetValue,
    StringValue,
    ZSetMember,
    ZSetValue,
)

LOG = logging.getLogger(__name__)

SCAN_DONE = "0"
_DEMO_CURSOR_PREFIX = "after:"

ClientFactory = Callable[[ConnectionProfile], aioredis.Redis]


@runtime_checkable
class StoreGateway(Protocol):
    """Protocol implemented by store gateways."""

    @property
    def connected(self) -> bool: ...

    @property
    def connection_id(self) -> int: ...

    @property
    def profile(self) -> ConnectionProfile | None: ...

    async def connect(self, profile: ConnectionProfile) -> None: ...

    async def disconnect(self) -> None: ...

    async def ping(self) -> float: ...

    async def scan_page(self, cursor: str, pattern: str, count: int) -> ScanPage: ...

    async def get(self, key: str) -> str | None: ...

    async def get_key_detail(self, key: str) -> KeyDetail: ...

    async def set_key_value(self, key: str, value: KeyValue, ttl: int | None = None) -> None: ...

    async def set_ttl(self, key: str, ttl: int) -> None: ...

    async def delete(self, key: str) -> bool: ...


class RedisStoreGateway:
    """Gateway backed by a redis-py asyncio client."""

    def __init__(
        self,
        *,
        socket_timeout: float = 5.0,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._socket_timeout = socket_timeout
        self._client_factory = client_factory or self._build_client
        self._client: aioredis.Redis | None = None
        self._profile: ConnectionProfile | None = None
        self._connection_id = 0

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def connection_id(self) -> int:
        return self._connection_id

    @property
    def profile(self) -> ConnectionProfile | None:
        return self._profile

    async def connect(self, profile: ConnectionProfile) -> None:
        """Replace any live connection with one to ``profile``."""

        await self.disconnect()
        client = self._client_factory(profile)
        try:
            await client.ping()
        except (RedisError, OSError) as exc:
            await _close_quietly(client)
            raise ConnectError(f"Failed to connect to profile '{profile.name}': {exc}") from exc
        self._client = client
        self._profile = profile
        self._connection_id += 1
        LOG.info("Connected to Redis", extra={"profile": profile.name, "host": profile.host, "port": profile.port})

    async def disconnect(self) -> None:
        client = self._client
        if client is None:
            return
        self._client = None
        self._profile = None
        await _close_quietly(client)

    async def ping(self) -> float:
        client = self._require_client()
        started = time.perf_counter()
        try:
            await client.ping()
        except (RedisError, OSError) as exc:
            raise UpstreamError(f"PING failed: {exc}") from exc
        return (time.perf_counter() - started) * 1000

    async def scan_page(self, cursor: str, pattern: str, count: int) -> ScanPage:
        client = self._require_client()
        try:
            next_cursor, keys = await client.scan(cursor=int(cursor), match=pattern, count=count)
        except (RedisError, OSError) as exc:
            raise UpstreamError(f"SCAN failed: {exc}") from exc
        return ScanPage(cursor=str(next_cursor), keys=tuple(str(key) for key in keys))

    async def get(self, key: str) -> str | None:
        client = self._require_client()
        try:
            return await client.get(key)
        except (RedisError, OSError) as exc:
            raise UpstreamError(f"GET {key!r} failed: {exc}") from exc

    async def get_key_detail(self, key: str) -> KeyDetail:
        client = self._require_client()
        try:
            type_name = await client.type(key)
            kind = _resolve_type(key, type_name)
            value = await self._read_value(client, key, kind)
            ttl = int(await client.ttl(key))
        except (RedisError, OSError) as exc:
            raise UpstreamError(f"Failed to read {key!r}: {exc}") from exc
        try:
            memory = await client.memory_usage(key)
        except ResponseError:
            # MEMORY is disabled on some managed deployments.
            memory = None
        except (RedisError, OSError) as exc:
            raise UpstreamError(f"MEMORY USAGE {key!r} failed: {exc}") from exc
        return KeyDetail(key=key, value=value, ttl=ttl, memory_bytes=int(memory) if memory is not None else None)

    async def set_key_value(self, key: str, value: KeyValue, ttl: int | None = None) -> None:
        client = self._require_client()
        keep_ttl = not ttl
        try:
            # DEL drops the expiry, so a rebuilt collection gets it back explicitly.
            remaining_ms = 0
            if keep_ttl and not isinstance(value, StringValue):
                remaining_ms = int(await client.pttl(key))
            async with client.pipeline(transaction=True) as pipe:
                if isinstance(value, StringValue):
                    pipe.set(key, value.payload, keepttl=keep_ttl)
                else:
                    pipe.delete(key)
                    _queue_collection(pipe, key, value)
                if ttl is not None and ttl > 0:
                    pipe.expire(key, ttl)
                elif ttl == -1:
                    pipe.persist(key)
                elif remaining_ms > 0 and value.payload:
                    pipe.pexpire(key, remaining_ms)
                await pipe.execute()
        except (RedisError, OSError) as exc:
            raise UpstreamError(f"Failed to write {key!r}: {exc}") from exc

    async def set_ttl(self, key: str, ttl: int) -> None:
        client = self._require_client()
        try:
            if ttl > 0:
                await client.expire(key, ttl)
            elif ttl == -1:
                await client.persist(key)
            else:
                raise ValueError("TTL must be positive, or -1 to remove the expiry.")
        except (RedisError, OSError) as exc:
            raise UpstreamError(f"Failed to update TTL for {key!r}: {exc}") from exc

    async def delete(self, key: str) -> bool:
        client = self._require_client()
        try:
            return bool(await client.delete(key))
        except (RedisError, OSError) as exc:
            raise UpstreamError(f"DEL {key!r} failed: {exc}") from exc

    def _require_client(self) -> aioredis.Redis:
        if self._client is None:
            raise NotConnectedError("Not connected to Redis")
        return self._client

    def _build_client(self, profile: ConnectionProfile) -> aioredis.Redis:
        return aioredis.Redis(
            host=profile.host,
            port=profile.port,
            username=profile.username or None,
            password=profile.password or None,
            decode_responses=True,
            socket_timeout=self._socket_timeout,
            socket_connect_timeout=self._socket_timeout,
            retry=Retry(ExponentialBackoff(cap=2.0, base=0.05), 3),
        )

    @staticmethod
    async def _read_value(client: aioredis.Redis, key: str, kind: KeyType) -> KeyValue:
        if kind is KeyType.STRING:
            return StringValue(await client.get(key) or "")
        if kind is KeyType.LIST:
            return ListValue(tuple(await client.lrange(key, 0, -1)))
        if kind is KeyType.SET:
            return SetValue(tuple(sorted(await client.smembers(key))))
        if kind is KeyType.ZSET:
            members = await client.zrange(key, 0, -1, withscores=True)
            return ZSetValue(tuple(ZSetMember(str(member), float(score)) for member, score in members))
        return HashValue(dict(await client.hgetall(key)))


def _resolve_type(key: str, type_name: str) -> KeyType:
    if type_name == "none":
        raise UpstreamError(f"Key '{key}' does not exist.")
    try:
        return KeyType(type_name)
    except ValueError:
        raise UpstreamError(f"Unsupported Redis data type: {type_name}") from None


def _queue_collection(pipe, key: str, value: KeyValue) -> None:  # type: ignore[no-untyped-def]
    if not value.payload:
        return
    if isinstance(value, ListValue):
        pipe.rpush(key, *value.payload)
    elif isinstance(value, SetValue):
        pipe.sadd(key, *value.payload)
    elif isinstance(value, ZSetValue):
        pipe.zadd(key, {entry.member: entry.score for entry in value.payload})
    elif isinstance(value, HashValue):
        pipe.hset(key, mapping=dict(value.payload))


async def _close_quietly(client: aioredis.Redis) -> None:
    try:
        await client.aclose()
    except (RedisError, OSError):  # pragma: no cover - best effort
        LOG.debug("Ignoring error while closing Redis client", exc_info=True)


DEMO_KEYSPACE: Mapping[str, KeyValue] = {
    "user:1001:name": StringValue("Anna"),
    "user:1002:name": StringValue("Ben"),
    "user:1003:name": StringValue("Cara"),
    "session:abc123": HashValue({"user": "1001", "ip": "10.0.0.4", "agent": "firefox"}),
    "session:def456": HashValue({"user": "1002", "ip": "10.0.0.9", "agent": "curl"}),
    "queue:emails": ListValue(("welcome:1001", "digest:1002", "reset:1003")),
    "tags:popular": SetValue(("cache", "python", "redis")),
    "leaderboard:weekly": ZSetValue(
        (ZSetMember("cara", 12.0), ZSetMember("anna", 31.5), ZSetMember("ben", 47.0))
    ),
    "config:feature_flags": HashValue({"dark_mode": "on", "beta_search": "off"}),
    "counter:visits": StringValue("4821"),
}


class DemoStoreGateway:
    """In-process keyspace that mimics Redis SCAN/TTL behaviour for demos and tests."""

    def __init__(
        self,
        keyspace: Mapping[str, KeyValue] | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        source = DEMO_KEYSPACE if keyspace is None else keyspace
        self._data: dict[str, KeyValue] = dict(source)
        self._expires: dict[str, float] = {}
        self._clock = clock
        self._profile: ConnectionProfile | None = None
        self._connection_id = 0

    @property
    def connected(self) -> bool:
        return self._profile is not None

    @property
    def connection_id(self) -> int:
        return self._connection_id

    @property
    def profile(self) -> ConnectionProfile | None:
        return self._profile

    @property
    def keys(self) -> tuple[str, ...]:
        """Live keys (testing helper)."""

        self._purge_expired()
        return tuple(self._data)

    async def connect(self, profile: ConnectionProfile) -> None:
        await self.disconnect()
        self._profile = profile
        self._connection_id += 1

    async def disconnect(self) -> None:
        self._profile = None

    async def ping(self) -> float:
        self._require_connection()
        return 0.0

    async def scan_page(self, cursor: str, pattern: str, count: int) -> ScanPage:
        """Walk keys in sorted order; the cursor names the last key examined.

        Keys present for the whole cycle are returned even when others are
        deleted or expire between pages.
        """

        self._require_connection()
        self._purge_expired()
        ordered = sorted(self._data)
        start = 0 if cursor == SCAN_DONE else bisect.bisect_right(ordered, _decode_demo_cursor(cursor))
        examined = ordered[start : start + max(count, 1)]
        keys = tuple(key for key in examined if fnmatch.fnmatchcase(key, pattern))
        if not examined or start + len(examined) >= len(ordered):
            return ScanPage(cursor=SCAN_DONE, keys=keys)
        return ScanPage(cursor=_DEMO_CURSOR_PREFIX + examined[-1], keys=keys)

    async def get(self, key: str) -> str | None:
        self._require_connection()
        value = self._lookup(key)
        if value is None:
            return None
        if not isinstance(value, StringValue):
            raise UpstreamError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return value.payload

    async def get_key_detail(self, key: str) -> KeyDetail:
        self._require_connection()
        value = self._lookup(key)
        if value is None:
            raise UpstreamError(f"Key '{key}' does not exist.")
        return KeyDetail(key=key, value=value, ttl=self._ttl(key), memory_bytes=_estimate_memory(key, value))

    async def set_key_value(self, key: str, value: KeyValue, ttl: int | None = None) -> None:
        self._require_connection()
        self._purge_expired()
        previous_deadline = self._expires.pop(key, None)
        self._data.pop(key, None)
        if not isinstance(value, StringValue) and not value.payload:
            return
        self._data[key] = _normalize_value(value)
        if ttl is not None and ttl > 0:
            self._expires[key] = self._clock() + ttl
        elif not ttl and previous_deadline is not None:
            self._expires[key] = previous_deadline

    async def set_ttl(self, key: str, ttl: int) -> None:
        self._require_connection()
        if ttl == -1:
            self._expires.pop(key, None)
            return
        if ttl <= 0:
            raise ValueError("TTL must be positive, or -1 to remove the expiry.")
        if self._lookup(key) is not None:
            self._expires[key] = self._clock() + ttl

    async def delete(self, key: str) -> bool:
        self._require_connection()
        existed = self._lookup(key) is not None
        self._data.pop(key, None)
        self._expires.pop(key, None)
        return existed

    def _require_connection(self) -> None:
        if self._profile is None:
            raise NotConnectedError("Not connected to Redis")

    def _lookup(self, key: str) -> KeyValue | None:
        self._purge_expired()
        return self._data.get(key)

    def _ttl(self, key: str) -> int:
        deadline = self._expires.get(key)
        if deadline is None:
            return -1
        return max(math.ceil(deadline - self._clock()), 0)

    def _purge_expired(self) -> None:
        now = self._clock()
        for key, deadline in tuple(self._expires.items()):
            if deadline <= now:
                self._expires.pop(key, None)
                self._data.pop(key, None)


def _decode_demo_cursor(cursor: str) -> str:
    if not cursor.startswith(_DEMO_CURSOR_PREFIX):
        raise UpstreamError(f"ERR invalid cursor {cursor!r}")
    return cursor[len(_DEMO_CURSOR_PREFIX) :]


def _normalize_value(value: KeyValue) -> KeyValue:
    if isinstance(value, SetValue):
        return SetValue(tuple(sorted(set(value.payload))))
    if isinstance(value, ZSetValue):
        unique = {entry.member: entry.score for entry in value.payload}
        ordered = sorted(unique.items(), key=lambda item: (item[1], item[0]))
        return ZSetValue(tuple(ZSetMember(member, score) for member, score in ordered))
    if isinstance(value, HashValue):
        return HashValue(dict(value.payload))
    return value


def _estimate_memory(key: str, value: KeyValue) -> int:
    payload: Sequence[str]
    if isinstance(value, StringValue):
        payload = (value.payload,)
    elif isinstance(value, ZSetValue):
        payload = tuple(entry.member for entry in value.payload)
    elif isinstance(value, HashValue):
        payload = tuple(value.payload) + tuple(value.payload.values())
    else:
        payload = value.payload
    return 56 + len(key.encode()) + sum(len(item.encode()) + 8 for item in payload)


__all__ = [
    "DEMO_KEYSPACE",
    "DemoStoreGateway",
    "RedisStoreGateway",
    "SCAN_DONE",
    "StoreGateway",
]
