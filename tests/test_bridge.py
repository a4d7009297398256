"""Tests for the request bridge."""

from __future__ import annotations

from pathlib import Path

import pytest

from redisui.bridge import Envelope, RequestBridge, parse_key_value
from redisui.errors import ConnectError
from redisui.gateway import DemoStoreGateway
from redisui.models import ConnectionProfile, HashValue, StringValue, ZSetMember, ZSetValue
from redisui.registry import ConnectionRegistry


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


LOCAL = {"name": "Local", "host": "localhost", "port": 6379}


def _bridge(tmp_path: Path, keys: list[str] | None = None, **kwargs: int) -> RequestBridge:
    keyspace = None if keys is None else {key: StringValue(key) for key in keys}
    registry = ConnectionRegistry(tmp_path / "connections.json")
    return RequestBridge(registry, DemoStoreGateway(keyspace), **kwargs)


@pytest.mark.anyio
async def test_operations_before_connect_fail_softly(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path)

    for name, payload in (("scan", {}), ("get-details", "k"), ("search", "*")):
        envelope = await bridge.dispatch(name, payload)
        assert envelope.success is False
        assert envelope.error == "Not connected to Redis"


@pytest.mark.anyio
async def test_unknown_operation(tmp_path: Path) -> None:
    envelope = await _bridge(tmp_path).dispatch("flushall")

    assert envelope == Envelope(success=False, error="Unknown operation 'flushall'.")


@pytest.mark.anyio
async def test_connection_profile_crud(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path)

    assert (await bridge.dispatch("save-connection", LOCAL)).success is True
    listed = await bridge.dispatch("get-connections")
    assert listed.data == [{**LOCAL, "username": None, "password": None}]

    invalid = await bridge.dispatch("save-connection", {"name": "Broken"})
    assert invalid.success is False
    assert "Name, host and port are required" in (invalid.error or "")

    assert (await bridge.dispatch("delete-connection", "Local")).success is True
    assert (await bridge.dispatch("get-connections")).data == []


@pytest.mark.anyio
async def test_connect_by_saved_name_or_inline_profile(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path)
    await bridge.dispatch("save-connection", LOCAL)

    by_name = await bridge.dispatch("connect", "Local")
    assert by_name.data == LOCAL
    inline = await bridge.dispatch("connect", {"name": "Adhoc", "host": "h", "port": 1})
    assert inline.data == {"name": "Adhoc", "host": "h", "port": 1}
    missing = await bridge.dispatch("connect", {"name": "Nope"})
    assert missing.error == "Profile 'Nope' not found."


@pytest.mark.anyio
async def test_connect_failure_is_reported(tmp_path: Path) -> None:
    class _RefusingGateway(DemoStoreGateway):
        async def connect(self, profile: ConnectionProfile) -> None:
            raise ConnectError(f"Failed to connect to profile '{profile.name}': refused")

    bridge = RequestBridge(ConnectionRegistry(tmp_path / "c.json"), _RefusingGateway())

    envelope = await bridge.dispatch("connect", LOCAL)

    assert envelope.success is False
    assert envelope.error == "Failed to connect to profile 'Local': refused"


@pytest.mark.anyio
async def test_scan_pages_until_exhausted(tmp_path: Path) -> None:
    keys = [f"user:{idx}" for idx in range(7)]
    bridge = _bridge(tmp_path, keys)
    await bridge.dispatch("connect", LOCAL)
    collected: list[str] = []

    first = await bridge.dispatch("scan", {"pattern": "user:*", "count": 3, "restart": True})
    collected.extend(first.data["keys"])
    assert first.data["hasMore"] is True
    while True:
        page = await bridge.dispatch("scan", {"pattern": "user:*", "count": 3})
        collected.extend(page.data["keys"])
        if not page.data["hasMore"]:
            break

    assert page.data["cursor"] == "0"
    assert sorted(collected) == sorted(keys)

    again = await bridge.dispatch("scan", {"pattern": "user:*", "count": 3, "restart": True})
    assert again.data["keys"] == first.data["keys"]


@pytest.mark.anyio
async def test_pattern_change_restarts_scan(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, ["a1", "a2", "b1"])
    await bridge.dispatch("connect", LOCAL)
    await bridge.dispatch("scan", {"pattern": "*", "count": 1})

    envelope = await bridge.dispatch("scan", {"pattern": "b*", "count": 10})

    assert envelope.data == {"keys": ["b1"], "cursor": "0", "hasMore": False, "restarted": True}


@pytest.mark.anyio
async def test_scan_reports_whether_it_restarted(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, ["a1", "a2", "a3", "b1"])
    await bridge.dispatch("connect", LOCAL)

    first = await bridge.dispatch("scan", {"pattern": "*", "count": 2})
    more = await bridge.dispatch("scan", {"pattern": "*", "count": 2})
    edited = await bridge.dispatch("scan", {"pattern": "a*", "count": 2})

    assert first.data["restarted"] is True
    assert more.data["restarted"] is False
    assert more.data["keys"] == ["a3", "b1"]
    assert edited.data["restarted"] is True
    assert edited.data["keys"] == ["a1", "a2"]


@pytest.mark.anyio
async def test_ping_reports_latency(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, [])

    assert (await bridge.dispatch("ping")).error == "Not connected to Redis"
    await bridge.dispatch("connect", LOCAL)
    envelope = await bridge.dispatch("ping")

    assert envelope.success is True
    assert envelope.data["latencyMs"] >= 0


@pytest.mark.anyio
async def test_reconnect_discards_scan_session(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, ["a", "b", "c"])
    await bridge.dispatch("connect", LOCAL)
    await bridge.dispatch("scan", {"count": 2})

    await bridge.dispatch("connect", {"name": "Other", "host": "localhost", "port": 6379})
    envelope = await bridge.dispatch("scan", {"count": 2})

    assert envelope.data["keys"] == ["a", "b"]


@pytest.mark.anyio
async def test_search_respects_cap(tmp_path: Path) -> None:
    keys = [f"k{idx:02d}" for idx in range(40)]
    bridge = _bridge(tmp_path, keys, page_size=10, search_cap=15)
    await bridge.dispatch("connect", LOCAL)

    capped = await bridge.dispatch("search", {"pattern": "k*"})
    assert 15 <= len(capped.data) <= 15 + 10 - 1

    narrow = await bridge.dispatch("search", "k0*")
    assert narrow.data == [f"k0{idx}" for idx in range(10)]


@pytest.mark.anyio
async def test_set_and_get_details_for_collections(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, [])
    await bridge.dispatch("connect", LOCAL)

    saved = await bridge.dispatch(
        "set",
        {"key": "board", "type": "zset", "value": '[{"member": "b", "score": 2}, ["a", 1]]', "ttl": 120},
    )
    assert saved.success is True
    details = await bridge.dispatch("get-details", "board")
    assert details.data["type"] == "zset"
    assert details.data["value"] == [{"member": "a", "score": 1.0}, {"member": "b", "score": 2.0}]
    assert 0 < details.data["ttl"] <= 120
    assert details.data["memory"] > 0

    await bridge.dispatch("set", {"key": "h", "type": "hash", "value": {"f": 1}})
    hashed = await bridge.dispatch("get-details", {"key": "h"})
    assert hashed.data["value"] == {"f": "1"}
    assert hashed.data["ttl"] == -1


@pytest.mark.anyio
async def test_set_requires_key(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, [])
    await bridge.dispatch("connect", LOCAL)

    envelope = await bridge.dispatch("set", {"key": "", "type": "string", "value": "x"})

    assert envelope == Envelope(success=False, error="Key is required")


@pytest.mark.anyio
async def test_get_set_ttl_and_delete(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, ["greeting"])
    await bridge.dispatch("connect", LOCAL)

    assert (await bridge.dispatch("get", "greeting")).data == "greeting"
    assert (await bridge.dispatch("set-ttl", {"key": "greeting", "ttl": 30})).success is True
    assert 0 < (await bridge.dispatch("get-details", "greeting")).data["ttl"] <= 30
    await bridge.dispatch("set-ttl", {"key": "greeting", "ttl": -1})
    assert (await bridge.dispatch("get-details", "greeting")).data["ttl"] == -1

    assert (await bridge.dispatch("delete", "greeting")).success is True
    missing = await bridge.dispatch("get-details", "greeting")
    assert missing.error == "Key 'greeting' does not exist."


@pytest.mark.anyio
async def test_unexpected_errors_become_envelopes(tmp_path: Path) -> None:
    class _BrokenGateway(DemoStoreGateway):
        async def get(self, key: str) -> str | None:
            raise KeyError(key)

    bridge = RequestBridge(ConnectionRegistry(tmp_path / "c.json"), _BrokenGateway())
    await bridge.dispatch("connect", LOCAL)

    envelope = await bridge.dispatch("get", "k")

    assert envelope.success is False
    assert envelope.error


@pytest.mark.anyio
async def test_disconnect_then_scan_fails(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, ["a"])
    await bridge.dispatch("connect", LOCAL)

    await bridge.dispatch("disconnect")

    assert (await bridge.dispatch("scan", {})).error == "Not connected to Redis"


@pytest.mark.anyio
async def test_set_without_ttl_keeps_existing_expiry(tmp_path: Path) -> None:
    bridge = _bridge(tmp_path, [])
    await bridge.dispatch("connect", LOCAL)
    await bridge.dispatch("set", {"key": "q", "type": "list", "value": ["a"], "ttl": 300})

    await bridge.dispatch("set", {"key": "q", "type": "list", "value": ["a", "b"]})

    details = await bridge.dispatch("get-details", "q")
    assert details.data["value"] == ["a", "b"]
    assert 0 < details.data["ttl"] <= 300


def test_parse_key_value_variants() -> None:
    assert parse_key_value("string", {"a": 1}) == StringValue('{"a": 1}')
    assert parse_key_value("hash", '{"f": "v"}') == HashValue({"f": "v"})
    assert parse_key_value("zset", [["m", "1.5"]]) == ZSetValue((ZSetMember("m", 1.5),))
    with pytest.raises(ValueError):
        parse_key_value("list", '{"not": "a list"}')
    with pytest.raises(ValueError):
        parse_key_value("stream", "[]")
    with pytest.raises(ValueError):
        parse_key_value("set", "not json")
