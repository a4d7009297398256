"""Textual application entry point for redisui."""

from __future__ import annotations

import logging
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.widgets import Footer, Header

from .bridge import Envelope, RequestBridge
from .config import LOG_FILE, AppConfig, load_config, save_config
from .gateway import DemoStoreGateway, RedisStoreGateway, StoreGateway
from .providers import KeyReloadProvider, ProfileConnectProvider
from .refresh import Refresher
from .registry import ConnectionRegistry
from .widgets import (
    ConnectionSidebar,
    KeyBrowser,
    KeyDeleteRequested,
    KeyEditor,
    KeySaveRequested,
    KeySearchRequested,
    KeySelected,
    KeysRequested,
    ProfileDeleteRequested,
    ProfileSaveRequested,
    ProfileSelected,
    StatusBar,
)

LOG = logging.getLogger(__name__)

DEMO_PROFILE = {"name": "Demo keyspace", "host": "demo", "port": 6379}


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


def build_bridge(config: AppConfig) -> RequestBridge:
    """Wire the registry, gateway and scan controller for ``config``."""

    gateway: StoreGateway
    if config.demo_mode:
        gateway = DemoStoreGateway()
    else:
        gateway = RedisStoreGateway(socket_timeout=config.socket_timeout)
    registry = ConnectionRegistry(config.resolved_connections_file())
    return RequestBridge(registry, gateway, page_size=config.page_size, search_cap=config.search_cap)


class RedisUiApp(App[None]):
    """Three-pane Redis browser: profiles, keys, editor."""

    TITLE = "redisui"
    COMMANDS = App.COMMANDS | {ProfileConnectProvider, KeyReloadProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+r", "reload", "Reload Keys"),
        ("ctrl+n", "new_key", "New Key"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self, *, config: AppConfig | None = None, bridge: RequestBridge | None = None) -> None:
        super().__init__()
        self._config = config or _load_app_config()
        self._bridge = bridge or build_bridge(self._config)
        self._refresher = Refresher(self._config.refresh_interval)
        self._profiles: list[dict[str, Any]] = []
        self._connection: dict[str, Any] | None = None
        self._pattern = "*"

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        yield Horizontal(
            ConnectionSidebar(width=self._config.layout.sidebar_width),
            KeyBrowser(),
            KeyEditor(),
            id="content",
        )
        yield StatusBar()
        yield Footer()

    async def on_mount(self) -> None:
        await self.reload_profiles()
        if self._config.demo_mode and not self._config.active_profile:
            await self._open_connection(DEMO_PROFILE, remember=False)
        elif self._config.active_profile:
            await self.connect_profile(self._config.active_profile)

    async def _shutdown(self) -> None:
        self._refresher.stop()
        await self._bridge.close()
        await super()._shutdown()

    @property
    def bridge(self) -> RequestBridge:
        """Expose the bridge for tests and command providers."""

        return self._bridge

    @property
    def app_config(self) -> AppConfig:
        return self._config

    @property
    def profile_names(self) -> tuple[str, ...]:
        return tuple(str(profile["name"]) for profile in self._profiles)

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def remember_sidebar_width(self, width: int) -> None:
        """Persist the sidebar width when it changes."""

        if self._config.layout.sidebar_width == width:
            return
        self._config = self._config.with_layout(sidebar_width=width)
        save_config(self._config)

    async def reload_profiles(self) -> None:
        envelope = await self._bridge.dispatch("get-connections")
        if not self._report(envelope):
            return
        self._profiles = list(envelope.data or [])
        active = self._connection["name"] if self._connection else None
        await self.query_one(ConnectionSidebar).set_profiles(self._profiles, active)

    async def connect_profile(self, name: str) -> None:
        """Connect using a saved profile and persist it as the active one."""

        await self._open_connection({"name": name}, remember=True)

    async def load_keys(self, *, restart: bool, pattern: str | None = None) -> None:
        """Fetch the next scan page, or the first one when ``restart`` is set."""

        if pattern is not None:
            self._pattern = pattern
        envelope = await self._bridge.dispatch(
            "scan",
            {"pattern": self._pattern, "count": self._config.page_size, "restart": restart},
        )
        if not self._report(envelope):
            return
        browser = self.query_one(KeyBrowser)
        await browser.show_keys(
            envelope.data["keys"],
            append=not envelope.data["restarted"],
            has_more=envelope.data["hasMore"],
        )
        self.query_one(StatusBar).set_key_count(len(browser.keys))

    async def search_keys(self, pattern: str) -> None:
        """Collect every match up to the configured cap."""

        self._pattern = pattern
        envelope = await self._bridge.dispatch("search", pattern)
        if not self._report(envelope):
            return
        keys = list(envelope.data or [])
        session = self._bridge.scanner.session
        truncated = session is not None and not session.exhausted
        browser = self.query_one(KeyBrowser)
        await browser.show_keys(keys, append=False, has_more=truncated)
        if truncated:
            self.notify(f"Showing the first {len(keys)} matches; load more to continue.", severity="warning")
        self.query_one(StatusBar).set_key_count(len(keys))

    async def open_key(self, key: str) -> None:
        envelope = await self._bridge.dispatch("get-details", key)
        if not self._report(envelope):
            return
        self.query_one(KeyEditor).show_detail(key, envelope.data)
        self._refresher.start(lambda k=key: self._refresh_key_meta(k))

    def action_reload(self) -> None:
        if self.is_connected:
            self.run_worker(self.load_keys(restart=True), exclusive=True, group="keys")

    def action_new_key(self) -> None:
        self._refresher.stop()
        self.query_one(KeyEditor).clear()

    async def on_profile_selected(self, message: ProfileSelected) -> None:
        await self.connect_profile(message.profile_name)

    async def on_profile_save_requested(self, message: ProfileSaveRequested) -> None:
        envelope = await self._bridge.dispatch("save-connection", message.payload)
        if self._report(envelope):
            self.notify(f"Saved profile {message.payload.get('name')}", severity="information")
            await self.reload_profiles()

    async def on_profile_delete_requested(self, message: ProfileDeleteRequested) -> None:
        envelope = await self._bridge.dispatch("delete-connection", message.profile_name)
        if self._report(envelope):
            await self.reload_profiles()

    async def on_keys_requested(self, message: KeysRequested) -> None:
        await self.load_keys(restart=message.restart, pattern=message.pattern)

    async def on_key_search_requested(self, message: KeySearchRequested) -> None:
        await self.search_keys(message.pattern)

    async def on_key_selected(self, message: KeySelected) -> None:
        if message.key is None:
            self.action_new_key()
            return
        await self.open_key(message.key)

    async def on_key_save_requested(self, message: KeySaveRequested) -> None:
        editor = self.query_one(KeyEditor)
        envelope = await self._bridge.dispatch("set", message.payload)
        if not envelope.success:
            editor.set_status(envelope.error or "Save failed", severity="error")
            return
        key = message.payload["key"]
        verb = "created" if message.created else "updated"
        self.notify(f"Key {verb} successfully", severity="information")
        await self.query_one(KeyBrowser).add_key(key)
        await self.open_key(key)

    async def on_key_delete_requested(self, message: KeyDeleteRequested) -> None:
        envelope = await self._bridge.dispatch("delete", message.key)
        if not self._report(envelope):
            return
        self._refresher.stop()
        await self.query_one(KeyBrowser).remove_key(message.key)
        self.query_one(KeyEditor).clear()
        self.notify("Key deleted successfully", severity="information")

    async def _open_connection(self, payload: dict[str, Any], *, remember: bool) -> None:
        self._refresher.stop()
        envelope = await self._bridge.dispatch("connect", payload)
        status = self.query_one(StatusBar)
        if not envelope.success:
            self._connection = None
            status.set_connection(None)
            status.set_error(envelope.error)
            self.query_one(KeyBrowser).set_status("Not connected.")
            self.notify(envelope.error or "Connection failed", severity="error")
            return
        self._connection = dict(envelope.data)
        status.set_connection(self._connection)
        latency = await self._bridge.dispatch("ping")
        if latency.success:
            status.set_latency(latency.data["latencyMs"])
        self.query_one(ConnectionSidebar).set_active(self._connection["name"])
        self.query_one(KeyEditor).clear()
        if remember:
            self._config = self._config.with_active_profile(self._connection["name"])
            save_config(self._config)
        await self.load_keys(restart=True)

    async def _refresh_key_meta(self, key: str) -> None:
        envelope = await self._bridge.dispatch("get-details", key)
        editor = self.query_one(KeyEditor)
        if editor.current_key != key:
            self._refresher.stop()
            return
        if envelope.success:
            editor.update_meta(envelope.data)
        else:
            self._refresher.stop()
            editor.set_status(envelope.error or "Key is no longer available", severity="warning")

    def _report(self, envelope: Envelope) -> bool:
        if envelope.success:
            return True
        LOG.info("Operation failed", extra={"reason": envelope.error})
        self.query_one(StatusBar).set_error(envelope.error)
        self.notify(envelope.error or "Operation failed", severity="error")
        return False


def _configure_logging(config: AppConfig) -> None:
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=LOG_FILE,
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Invoke the Textual application."""

    config = _load_app_config()
    _configure_logging(config)
    RedisUiApp(config=config).run()


if __name__ == "__main__":
    main()
