"""Key list with pattern search and incremental "load more" paging."""

from __future__ import annotations

from typing import Sequence

from textual import on
from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.message import Message
from textual.widgets import Button, Input, Label, ListItem, ListView, Static


class KeyBrowser(Container):
    """Lists keys discovered by the scan controller."""

    DEFAULT_CSS = """
    KeyBrowser {
        layout: vertical;
        width: 40;
        min-width: 28;
        padding: 1;
        height: 1fr;
        border-right: solid $surface-darken-1;
    }

    KeyBrowser .panel-title {
        text-style: bold;
    }

    KeyBrowser .browser-actions {
        height: auto;
    }

    KeyBrowser .browser-actions Button {
        width: 1fr;
    }

    #key-list {
        height: 1fr;
        border: round $primary 30%;
    }

    #key-status {
        color: $text-muted;
    }
    """

    def __init__(self) -> None:
        super().__init__(id="key-browser")
        self._keys: list[str] = []
        self._list: ListView | None = None

    def compose(self) -> ComposeResult:
        yield Static("Keys", classes="panel-title")
        yield Input(value="*", placeholder="Pattern, e.g. user:*", id="key-pattern")
        yield Horizontal(
            Button("Scan", id="key-scan", variant="primary"),
            Button("Find all", id="key-find-all"),
            Button("New", id="key-new"),
            classes="browser-actions",
        )
        self._list = ListView(id="key-list")
        yield self._list
        yield Button("Load more", id="key-more", disabled=True)
        yield Static("Not connected.", id="key-status")

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._keys)

    @property
    def pattern(self) -> str:
        return self.query_one("#key-pattern", Input).value.strip() or "*"

    async def show_keys(self, keys: Sequence[str], *, append: bool, has_more: bool) -> None:
        """Render a page of keys, either replacing or extending the list."""

        if self._list is None:
            return
        if not append:
            self._keys.clear()
            await self._list.clear()
        self._keys.extend(keys)
        if keys:
            await self._list.extend([_KeyListItem(key) for key in keys])
        self.query_one("#key-more", Button).disabled = not has_more
        suffix = " (more available)" if has_more else ""
        self.set_status(f"{len(self._keys)} key(s){suffix}")

    async def add_key(self, key: str) -> None:
        if self._list is None or key in self._keys:
            return
        self._keys.append(key)
        await self._list.append(_KeyListItem(key))

    async def remove_key(self, key: str) -> None:
        if self._list is None:
            return
        self._keys = [existing for existing in self._keys if existing != key]
        for child in tuple(self._list.children):
            if isinstance(child, _KeyListItem) and child.redis_key == key:
                await child.remove()

    def set_status(self, message: str) -> None:
        self.query_one("#key-status", Static).update(message)

    @on(Input.Submitted, "#key-pattern")
    def _handle_pattern_submitted(self, event: Input.Submitted) -> None:
        self.post_message(KeysRequested(self.pattern, restart=True))
        event.stop()

    @on(Button.Pressed, "#key-scan")
    def _handle_scan(self, event: Button.Pressed) -> None:
        self.post_message(KeysRequested(self.pattern, restart=True))
        event.stop()

    @on(Button.Pressed, "#key-more")
    def _handle_more(self, event: Button.Pressed) -> None:
        self.post_message(KeysRequested(self.pattern, restart=False))
        event.stop()

    @on(Button.Pressed, "#key-find-all")
    def _handle_find_all(self, event: Button.Pressed) -> None:
        self.post_message(KeySearchRequested(self.pattern))
        event.stop()

    @on(Button.Pressed, "#key-new")
    def _handle_new(self, event: Button.Pressed) -> None:
        self.post_message(KeySelected(None))
        event.stop()

    @on(ListView.Selected, "#key-list")
    def _handle_key_selected(self, event: ListView.Selected) -> None:
        if isinstance(event.item, _KeyListItem):
            self.post_message(KeySelected(event.item.redis_key))
            event.stop()


class _KeyListItem(ListItem):
    def __init__(self, key: str) -> None:
        super().__init__(Label(key, markup=False))
        self.redis_key = key


class KeysRequested(Message):
    """Request a scan page; ``restart`` begins a new scan."""

    def __init__(self, pattern: str, *, restart: bool) -> None:
        super().__init__()
        self.pattern = pattern
        self.restart = restart


class KeySearchRequested(Message):
    """Request a bulk, capped search for ``pattern``."""

    def __init__(self, pattern: str) -> None:
        super().__init__()
        self.pattern = pattern


class KeySelected(Message):
    """A key was picked; ``None`` means start a new key."""

    def __init__(self, key: str | None) -> None:
        super().__init__()
        self.key = key


__all__ = ["KeyBrowser", "KeySearchRequested", "KeySelected", "KeysRequested"]
