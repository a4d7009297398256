"""Cursor-driven key discovery on top of a store gateway.

A :class:`ScanSession` tracks one logical SCAN cycle. Pages are fetched
strictly in sequence because each request consumes the cursor returned by the
previous one. Keys are surfaced exactly as the store returns them, so a key
that SCAN repeats across pages appears more than once.

A cursor of ``"0"`` means "not started" before the first page and "cycle
complete" after it; ``pages_fetched`` tells the two apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .errors import NotConnectedError, UpstreamError
from .gateway import SCAN_DONE, StoreGateway

LOG = logging.getLogger(__name__)

DEFAULT_PATTERN = "*"
DEFAULT_PAGE_SIZE = 50
DEFAULT_RESULT_CAP = 1000


class ScanState(str, Enum):
    UNSTARTED = "unstarted"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


@dataclass(slots=True)
class ScanSession:
    """Mutable state of one scan over one connection."""

    pattern: str = DEFAULT_PATTERN
    cursor: str = SCAN_DONE
    keys: list[str] = field(default_factory=list)
    exhausted: bool = False
    pages_fetched: int = 0
    connection_id: int = 0

    @property
    def state(self) -> ScanState:
        if self.exhausted:
            return ScanState.EXHAUSTED
        if self.pages_fetched == 0:
            return ScanState.UNSTARTED
        return ScanState.ACTIVE

    @property
    def has_more(self) -> bool:
        return not self.exhausted


@dataclass(frozen=True, slots=True)
class PageResult:
    """Outcome of a single page fetch."""

    keys: tuple[str, ...]
    new_cursor: str
    page_exhausted: bool


class ScanController:
    """Drives SCAN pagination for the gateway it was handed."""

    def __init__(self, gateway: StoreGateway) -> None:
        self._gateway = gateway
        self._session: ScanSession | None = None

    @property
    def gateway(self) -> StoreGateway:
        return self._gateway

    @property
    def session(self) -> ScanSession | None:
        """The live session, if a scan was started."""

        return self._session

    def start_scan(self, pattern: str | None = DEFAULT_PATTERN) -> ScanSession:
        """Discard any prior session and begin a new one for ``pattern``."""

        session = ScanSession(
            pattern=pattern or DEFAULT_PATTERN,
            connection_id=self._gateway.connection_id,
        )
        self._session = session
        LOG.debug("Scan started", extra={"pattern": session.pattern})
        return session

    def reset(self) -> None:
        """Forget the current session (disconnect/reconnect)."""

        self._session = None

    def is_current(self, session: ScanSession) -> bool:
        """Whether ``session`` still belongs to the live connection."""

        return self._gateway.connected and session.connection_id == self._gateway.connection_id

    async def fetch_next_page(self, session: ScanSession, page_size: int = DEFAULT_PAGE_SIZE) -> PageResult:
        """Fetch one page and advance ``session``; failures leave it untouched."""

        if page_size <= 0:
            raise ValueError("Page size must be positive.")
        if not self._gateway.connected:
            raise NotConnectedError("Not connected to Redis")
        if session.connection_id != self._gateway.connection_id:
            raise NotConnectedError("Scan session belongs to a previous connection; start a new scan.")
        if session.exhausted:
            return PageResult(keys=(), new_cursor=SCAN_DONE, page_exhausted=True)
        try:
            page = await self._gateway.scan_page(session.cursor, session.pattern, page_size)
        except UpstreamError:
            LOG.warning(
                "Scan page failed",
                extra={"pattern": session.pattern, "cursor": session.cursor},
                exc_info=True,
            )
            raise
        page_exhausted = page.cursor == SCAN_DONE
        session.keys.extend(page.keys)
        session.cursor = page.cursor
        session.exhausted = page_exhausted
        session.pages_fetched += 1
        LOG.debug(
            "Scan page fetched",
            extra={"pattern": session.pattern, "cursor": page.cursor, "count": len(page.keys)},
        )
        if page_exhausted:
            LOG.info("Scan complete", extra={"pattern": session.pattern, "total": len(session.keys)})
        return PageResult(keys=page.keys, new_cursor=page.cursor, page_exhausted=page_exhausted)

    async def fetch_all(
        self,
        pattern: str | None = DEFAULT_PATTERN,
        hard_cap: int = DEFAULT_RESULT_CAP,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[str, ...]:
        """Scan from a fresh cursor until exhausted or ``hard_cap`` keys are collected.

        The cap is checked between pages, so the result may exceed it by up to
        one page. A truncated result leaves ``session.exhausted`` false.
        """

        if hard_cap <= 0:
            raise ValueError("Result cap must be positive.")
        session = self.start_scan(pattern)
        while not session.exhausted and len(session.keys) < hard_cap:
            await self.fetch_next_page(session, page_size)
        if not session.exhausted:
            LOG.info(
                "Search truncated at result cap",
                extra={"pattern": session.pattern, "cap": hard_cap, "total": len(session.keys)},
            )
        return tuple(session.keys)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_PATTERN",
    "DEFAULT_RESULT_CAP",
    "PageResult",
    "ScanController",
    "ScanSession",
    "ScanState",
]
