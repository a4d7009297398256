"""Tests for the scan controller."""

from __future__ import annotations

import pytest

from redisui.errors import NotConnectedError, UpstreamError
from redisui.gateway import DemoStoreGateway
from redisui.models import ConnectionProfile, ScanPage, StringValue
from redisui.scan import PageResult, ScanController, ScanState


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _ScriptedGateway:
    """Gateway stub replaying a fixed cursor -> (next cursor, keys) script."""

    def __init__(self, pages: dict[str, tuple[str, tuple[str, ...]]]) -> None:
        self.pages = pages
        self.calls: list[tuple[str, str, int]] = []
        self.connected = True
        self.connection_id = 1
        self.failures: list[Exception] = []

    async def scan_page(self, cursor: str, pattern: str, count: int) -> ScanPage:
        self.calls.append((cursor, pattern, count))
        if self.failures:
            raise self.failures.pop(0)
        next_cursor, keys = self.pages[cursor]
        return ScanPage(cursor=next_cursor, keys=keys)


_THREE_PAGES = {
    "0": ("17", ("a", "b")),
    "17": ("42", ("c",)),
    "42": ("0", ("a",)),
}


async def _demo_gateway(keys: list[str]) -> DemoStoreGateway:
    gateway = DemoStoreGateway({key: StringValue(key) for key in keys})
    await gateway.connect(ConnectionProfile(name="Demo"))
    return gateway


def test_start_scan_resets_session() -> None:
    controller = ScanController(_ScriptedGateway(_THREE_PAGES))

    session = controller.start_scan("user:*")

    assert session.cursor == "0"
    assert session.keys == []
    assert session.exhausted is False
    assert session.state is ScanState.UNSTARTED
    assert controller.session is session


def test_empty_pattern_defaults_to_match_all() -> None:
    controller = ScanController(_ScriptedGateway(_THREE_PAGES))

    assert controller.start_scan("").pattern == "*"
    assert controller.start_scan(None).pattern == "*"


@pytest.mark.anyio
async def test_cursor_chain_and_exhaustion_flag() -> None:
    gateway = _ScriptedGateway(_THREE_PAGES)
    controller = ScanController(gateway)
    session = controller.start_scan("*")
    flags: list[bool] = []
    states: list[ScanState] = []

    while not session.exhausted:
        result = await controller.fetch_next_page(session, 5)
        flags.append(result.page_exhausted)
        states.append(session.state)

    assert [call[0] for call in gateway.calls] == ["0", "17", "42"]
    assert flags == [False, False, True]
    assert states == [ScanState.ACTIVE, ScanState.ACTIVE, ScanState.EXHAUSTED]
    # Keys repeated across pages are surfaced as returned.
    assert session.keys == ["a", "b", "c", "a"]
    assert session.pages_fetched == 3


@pytest.mark.anyio
async def test_fetch_on_exhausted_session_does_not_hit_store() -> None:
    gateway = _ScriptedGateway({"0": ("0", ("only",))})
    controller = ScanController(gateway)
    session = controller.start_scan()
    await controller.fetch_next_page(session)

    result = await controller.fetch_next_page(session)

    assert result == PageResult(keys=(), new_cursor="0", page_exhausted=True)
    assert len(gateway.calls) == 1


@pytest.mark.anyio
async def test_failed_page_leaves_session_untouched_and_retry_matches() -> None:
    gateway = _ScriptedGateway(_THREE_PAGES)
    controller = ScanController(gateway)
    session = controller.start_scan("*")
    await controller.fetch_next_page(session, 5)
    before = (session.cursor, list(session.keys), session.exhausted, session.pages_fetched)

    gateway.failures.append(UpstreamError("connection reset"))
    with pytest.raises(UpstreamError):
        await controller.fetch_next_page(session, 5)

    assert (session.cursor, list(session.keys), session.exhausted, session.pages_fetched) == before
    retried = await controller.fetch_next_page(session, 5)

    control = ScanController(_ScriptedGateway(_THREE_PAGES))
    control_session = control.start_scan("*")
    await control.fetch_next_page(control_session, 5)
    expected = await control.fetch_next_page(control_session, 5)

    assert retried == expected
    assert session.keys == control_session.keys
    assert gateway.calls[-1][0] == gateway.calls[-2][0] == "17"


@pytest.mark.anyio
async def test_fetch_requires_live_connection() -> None:
    gateway = _ScriptedGateway(_THREE_PAGES)
    controller = ScanController(gateway)
    session = controller.start_scan()
    gateway.connected = False

    with pytest.raises(NotConnectedError):
        await controller.fetch_next_page(session)
    assert gateway.calls == []


@pytest.mark.anyio
async def test_reconnect_invalidates_session() -> None:
    gateway = await _demo_gateway(["a1", "a2"])
    controller = ScanController(gateway)
    session = controller.start_scan("a*")

    await gateway.connect(ConnectionProfile(name="Other"))

    assert controller.is_current(session) is False
    with pytest.raises(NotConnectedError):
        await controller.fetch_next_page(session)
    fresh = controller.start_scan("a*")
    result = await controller.fetch_next_page(fresh, 10)
    assert result.keys == ("a1", "a2")


@pytest.mark.anyio
async def test_rejects_non_positive_page_size() -> None:
    controller = ScanController(_ScriptedGateway(_THREE_PAGES))
    session = controller.start_scan()

    with pytest.raises(ValueError):
        await controller.fetch_next_page(session, 0)


@pytest.mark.anyio
async def test_single_page_pattern_scan() -> None:
    gateway = await _demo_gateway(["a1", "a2", "b1"])
    controller = ScanController(gateway)
    session = controller.start_scan("a*")

    result = await controller.fetch_next_page(session, 10)

    assert result == PageResult(keys=("a1", "a2"), new_cursor="0", page_exhausted=True)
    assert session.exhausted is True


@pytest.mark.anyio
async def test_fetch_all_collects_everything_under_cap() -> None:
    keys = [f"k{idx:03d}" for idx in range(100)]
    controller = ScanController(await _demo_gateway(keys))

    result = await controller.fetch_all("*", hard_cap=1000, page_size=10)

    assert result == tuple(keys)
    assert controller.session is not None and controller.session.exhausted is True


@pytest.mark.anyio
async def test_fetch_all_truncates_at_page_boundary() -> None:
    controller = ScanController(await _demo_gateway([f"k{idx:03d}" for idx in range(100)]))

    result = await controller.fetch_all("*", hard_cap=25, page_size=10)

    assert 25 <= len(result) <= 25 + 10 - 1
    assert controller.session is not None and controller.session.exhausted is False


@pytest.mark.anyio
async def test_fetch_all_length_is_monotonic_in_cap() -> None:
    controller = ScanController(await _demo_gateway([f"k{idx:03d}" for idx in range(100)]))
    lengths: list[int] = []

    for cap in range(1, 130, 7):
        result = await controller.fetch_all("*", hard_cap=cap, page_size=10)
        assert len(result) <= cap + 10 - 1
        lengths.append(len(result))

    assert lengths == sorted(lengths)
    assert lengths[-1] == 100
