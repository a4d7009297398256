"""Status bar widget that mirrors the connection state."""

from __future__ import annotations

from typing import Any, Mapping

from textual.widgets import Static


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self) -> None:
        super().__init__("Not connected", id="status-bar")
        self._connection: Mapping[str, Any] | None = None
        self._key_count = 0
        self._error: str | None = None
        self._latency_ms: float | None = None
        self._summary = "Not connected"

    def set_connection(self, connection: Mapping[str, Any] | None) -> None:
        self._connection = connection
        self._key_count = 0
        self._latency_ms = None
        self._error = None
        self._render_status()

    @property
    def summary(self) -> str:
        return self._summary

    def set_latency(self, latency_ms: float | None) -> None:
        self._latency_ms = latency_ms
        self._render_status()

    def set_key_count(self, count: int) -> None:
        self._key_count = count
        self._render_status()

    def set_error(self, message: str | None) -> None:
        self._error = message
        self._render_status()

    def _render_status(self) -> None:
        if not self._connection:
            parts = ["Not connected"]
        else:
            host = self._connection.get("host") or "localhost"
            port = self._connection.get("port")
            parts = [
                f"Profile: {self._connection.get('name')}",
                f"Server: {host}:{port}",
                f"Keys loaded: {self._key_count}",
            ]
            if self._latency_ms is not None:
                parts.append(f"Ping: {self._latency_ms:.1f} ms")
        if self._error:
            parts.append(f"Error: {self._error.splitlines()[0][:80]}")
        self._summary = " | ".join(parts)
        self.update(self._summary)


__all__ = ["StatusBar"]
