"""Request/response bridge between the UI and the core services.

Every operation is a named async call taking one payload and returning an
:class:`Envelope`. Nothing raises across this boundary: failures become
``Envelope(success=False, error=...)``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Awaitable, Callable, Mapping, Sequence

from pydantic import BaseModel

from .errors import RedisUiError
from .gateway import StoreGateway
from .models import (
    ConnectionProfile,
    HashValue,
    KeyType,
    KeyValue,
    ListValue,
    SetValue,
    StringValue,
    ZSetMember,
    ZSetValue,
    value_to_data,
)
from .registry import ConnectionRegistry, validate_profile
from .scan import DEFAULT_PAGE_SIZE, DEFAULT_PATTERN, DEFAULT_RESULT_CAP, ScanController

LOG = logging.getLogger(__name__)

BridgeHandler = Callable[[Any], Awaitable[Any]]


class Envelope(BaseModel):
    """Uniform response shape of every bridge operation."""

    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> Envelope:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> Envelope:
        return cls(success=False, error=message)


class RequestBridge:
    """Routes named operations to the registry, gateway and scan controller."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        gateway: StoreGateway,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        search_cap: int = DEFAULT_RESULT_CAP,
    ) -> None:
        self._registry = registry
        self._gateway = gateway
        self._scanner = ScanController(gateway)
        self._page_size = page_size
        self._search_cap = search_cap
        self._handlers: dict[str, BridgeHandler] = {
            "get-connections": self._get_connections,
            "save-connection": self._save_connection,
            "delete-connection": self._delete_connection,
            "connect": self._connect,
            "disconnect": self._disconnect,
            "ping": self._ping,
            "scan": self._scan,
            "search": self._search,
            "get": self._get,
            "get-details": self._get_details,
            "set": self._set,
            "set-ttl": self._set_ttl,
            "delete": self._delete,
        }

    @property
    def operations(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def gateway(self) -> StoreGateway:
        return self._gateway

    @property
    def scanner(self) -> ScanController:
        return self._scanner

    async def dispatch(self, name: str, payload: Any = None) -> Envelope:
        """Run the named operation and wrap its outcome in an envelope."""

        handler = self._handlers.get(name)
        if handler is None:
            return Envelope.fail(f"Unknown operation '{name}'.")
        try:
            data = await handler(payload)
        except (RedisUiError, ValueError) as exc:
            LOG.info("Bridge operation failed", extra={"operation": name, "reason": str(exc)})
            return Envelope.fail(str(exc))
        except Exception as exc:
            LOG.exception("Unexpected bridge failure", extra={"operation": name})
            return Envelope.fail(str(exc) or exc.__class__.__name__)
        return Envelope.ok(data)

    async def close(self) -> None:
        self._scanner.reset()
        await self._gateway.disconnect()

    async def _get_connections(self, _payload: Any) -> list[dict[str, Any]]:
        return [asdict(profile) for profile in self._registry.list()]

    async def _save_connection(self, payload: Any) -> None:
        self._registry.upsert(_require_mapping(payload, "connection"))

    async def _delete_connection(self, payload: Any) -> None:
        self._registry.delete(_require_text(payload, "name"))

    async def _connect(self, payload: Any) -> dict[str, Any]:
        profile = self._resolve_profile(payload)
        self._scanner.reset()
        await self._gateway.connect(profile)
        return {"name": profile.name, "host": profile.host, "port": profile.port}

    async def _disconnect(self, _payload: Any) -> None:
        self._scanner.reset()
        await self._gateway.disconnect()

    async def _scan(self, payload: Any) -> dict[str, Any]:
        options = dict(payload or {})
        pattern = str(options.get("pattern") or DEFAULT_PATTERN)
        count = int(options.get("count") or self._page_size)
        session = self._scanner.session
        restarted = bool(
            options.get("restart")
            or session is None
            or session.pattern != pattern
            or not self._scanner.is_current(session)
        )
        if restarted or session is None:
            session = self._scanner.start_scan(pattern)
        page = await self._scanner.fetch_next_page(session, count)
        return {
            "keys": list(page.keys),
            "cursor": page.new_cursor,
            "hasMore": not page.page_exhausted,
            "restarted": restarted,
        }

    async def _ping(self, _payload: Any) -> dict[str, float]:
        return {"latencyMs": round(await self._gateway.ping(), 2)}

    async def _search(self, payload: Any) -> list[str]:
        if isinstance(payload, Mapping):
            payload = payload.get("pattern")
        pattern = str(payload or DEFAULT_PATTERN)
        keys = await self._scanner.fetch_all(pattern, self._search_cap, self._page_size)
        return list(keys)

    async def _get(self, payload: Any) -> str | None:
        return await self._gateway.get(_require_text(payload, "key"))

    async def _get_details(self, payload: Any) -> dict[str, Any]:
        detail = await self._gateway.get_key_detail(_require_text(payload, "key"))
        return {
            "type": detail.type.value,
            "value": value_to_data(detail.value),
            "ttl": detail.ttl,
            "memory": detail.memory_bytes,
        }

    async def _set(self, payload: Any) -> None:
        options = _require_mapping(payload, "set")
        key = str(options.get("key") or "")
        if not key:
            raise ValueError("Key is required")
        value = parse_key_value(options.get("type") or KeyType.STRING, options.get("value"))
        ttl = options.get("ttl")
        await self._gateway.set_key_value(key, value, int(ttl) if ttl is not None else None)

    async def _set_ttl(self, payload: Any) -> None:
        options = _require_mapping(payload, "set-ttl")
        await self._gateway.set_ttl(_require_text(options.get("key"), "key"), int(options.get("ttl", -1)))

    async def _delete(self, payload: Any) -> None:
        await self._gateway.delete(_require_text(payload, "key"))

    def _resolve_profile(self, payload: Any) -> ConnectionProfile:
        if isinstance(payload, str):
            return self._registry.get(payload)
        options = _require_mapping(payload, "connection")
        if set(options) == {"name"}:
            return self._registry.get(str(options["name"]))
        return validate_profile(options)


def parse_key_value(kind: KeyType | str, raw: Any) -> KeyValue:
    """Build the tagged value for ``kind`` from UI input (JSON text or structures)."""

    try:
        kind = KeyType(kind)
    except ValueError:
        raise ValueError("Unsupported Redis data type") from None
    if kind is KeyType.STRING:
        if raw is None:
            return StringValue("")
        if isinstance(raw, (Mapping, list)):
            return StringValue(json.dumps(raw))
        return StringValue(str(raw))
    data = json.loads(raw) if isinstance(raw, str) else raw
    if data is None:
        data = {} if kind is KeyType.HASH else []
    if kind is KeyType.HASH:
        if not isinstance(data, Mapping):
            raise ValueError("Hash value must be an object of field/value pairs.")
        return HashValue({str(field): _member_text(value) for field, value in data.items()})
    if not isinstance(data, Sequence) or isinstance(data, (str, bytes)):
        raise ValueError(f"{kind.value.capitalize()} value must be an array.")
    if kind is KeyType.LIST:
        return ListValue(tuple(_member_text(item) for item in data))
    if kind is KeyType.SET:
        return SetValue(tuple(_member_text(item) for item in data))
    return ZSetValue(tuple(_zset_member(item) for item in data))


def _zset_member(item: Any) -> ZSetMember:
    if isinstance(item, Mapping):
        return ZSetMember(_member_text(item.get("member")), float(item.get("score", 0)))
    if isinstance(item, Sequence) and not isinstance(item, (str, bytes)) and len(item) == 2:
        member, score = item
        return ZSetMember(_member_text(member), float(score))
    raise ValueError("Sorted set entries must be {member, score} objects or [member, score] pairs.")


def _member_text(value: Any) -> str:
    if isinstance(value, (Mapping, list)):
        return json.dumps(value)
    return "" if value is None else str(value)


def _require_mapping(payload: Any, label: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValueError(f"Expected an object payload for {label}.")
    return payload


def _require_text(payload: Any, label: str) -> str:
    if isinstance(payload, Mapping):
        payload = payload.get(label)
    if not isinstance(payload, str) or not payload:
        raise ValueError(f"{label.capitalize()} is required")
    return payload


__all__ = ["BridgeHandler", "Envelope", "RequestBridge", "parse_key_value"]
