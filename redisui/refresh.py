"""Periodic refresh helper used by the key editor."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

LOG = logging.getLogger(__name__)


class Refresher:
    """Re-runs a coroutine every ``interval`` seconds until stopped."""

    def __init__(self, interval: float = 5.0) -> None:
        self._interval = interval
        self._task: asyncio.Task[Any] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, coro_factory: Callable[[], Awaitable[Any]]) -> None:
        """Schedule the polling loop, replacing any previous one."""

        self.stop()
        if self._interval <= 0:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._runner(coro_factory))

    def stop(self) -> None:
        """Cancel the polling loop, if any."""

        if self._task:
            self._task.cancel()
            self._task = None

    async def _runner(self, coro_factory: Callable[[], Awaitable[Any]]) -> None:
        try:
            while True:
                await asyncio.sleep(self._interval)
                try:
                    await coro_factory()
                except Exception:
                    LOG.exception("Refresh tick failed")
        except asyncio.CancelledError:
            return


__all__ = ["Refresher"]
