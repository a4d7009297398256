"""Editor pane for creating, updating and deleting a single key."""

from __future__ import annotations

import json
from typing import Any, Mapping

from textual import on
from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.message import Message
from textual.widgets import Button, Input, Select, Static, TextArea

from redisui.models import KeyType
from redisui.ttl import TtlUnit, describe_ttl, split_ttl, to_seconds

_VALUE_HINTS = {
    KeyType.STRING: "Plain text.",
    KeyType.LIST: 'JSON array, e.g. ["a", "b"]',
    KeyType.SET: 'JSON array of unique members, e.g. ["a", "b"]',
    KeyType.ZSET: 'JSON array of {"member": ..., "score": ...} objects',
    KeyType.HASH: 'JSON object, e.g. {"field": "value"}',
}


class KeyEditor(Container):
    """Typed value editor with TTL controls."""

    DEFAULT_CSS = """
    KeyEditor {
        layout: vertical;
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
        background: $surface;
    }

    KeyEditor .panel-title {
        text-style: bold;
    }

    KeyEditor:focus-within {
        border: round $primary;
    }

    #editor-value {
        height: 1fr;
        min-height: 6;
    }

    KeyEditor .editor-row {
        height: auto;
    }

    KeyEditor .editor-row > * {
        margin-right: 1;
    }

    #editor-ttl {
        width: 16;
    }

    #editor-meta, #editor-hint {
        color: $text-muted;
    }
    """

    def __init__(self) -> None:
        super().__init__(id="key-editor")
        self._current_key: str | None = None

    def compose(self) -> ComposeResult:
        yield Static("New key", id="editor-title", classes="panel-title")
        yield Input(placeholder="Key", id="editor-key")
        yield Select(
            [(kind.value, kind.value) for kind in KeyType],
            value=KeyType.STRING.value,
            allow_blank=False,
            id="editor-type",
        )
        yield Static(_VALUE_HINTS[KeyType.STRING], id="editor-hint")
        yield TextArea(id="editor-value")
        yield Horizontal(
            Input(placeholder="TTL", id="editor-ttl", type="integer"),
            Select(
                [(unit.value, unit.value) for unit in TtlUnit],
                value=TtlUnit.NONE.value,
                allow_blank=False,
                id="editor-ttl-unit",
            ),
            classes="editor-row",
        )
        yield Static("", id="editor-meta")
        yield Horizontal(
            Button("Save", id="editor-save", variant="primary"),
            Button("Delete", id="editor-delete", variant="error", disabled=True),
            Static("", id="editor-status"),
            classes="editor-row",
        )

    @property
    def current_key(self) -> str | None:
        """Key loaded for editing, or ``None`` in create mode."""

        return self._current_key

    def clear(self) -> None:
        """Switch to create mode."""

        self._current_key = None
        self.query_one("#editor-title", Static).update("New key")
        self.query_one("#editor-key", Input).value = ""
        self.query_one("#editor-type", Select).value = KeyType.STRING.value
        self.query_one("#editor-value", TextArea).load_text("")
        self.query_one("#editor-ttl", Input).value = ""
        self.query_one("#editor-ttl-unit", Select).value = TtlUnit.NONE.value
        self.query_one("#editor-meta", Static).update("")
        self.query_one("#editor-delete", Button).disabled = True
        self.set_status("", severity="information")

    def show_detail(self, key: str, detail: Mapping[str, Any]) -> None:
        """Load a key's detail (``get-details`` payload) into the form."""

        self._current_key = key
        kind = KeyType(detail["type"])
        self.query_one("#editor-title", Static).update(f"Edit {kind.value}")
        self.query_one("#editor-key", Input).value = key
        self.query_one("#editor-type", Select).value = kind.value
        self.query_one("#editor-value", TextArea).load_text(self._format_value(kind, detail.get("value")))
        amount, unit = split_ttl(int(detail.get("ttl", -1)))
        self.query_one("#editor-ttl", Input).value = "" if amount is None else str(amount)
        self.query_one("#editor-ttl-unit", Select).value = unit.value
        self.query_one("#editor-delete", Button).disabled = False
        self.update_meta(detail)
        self.set_status("", severity="information")

    def update_meta(self, detail: Mapping[str, Any]) -> None:
        """Refresh TTL/memory readouts without touching pending edits."""

        memory = detail.get("memory")
        size = f"{memory} bytes" if memory is not None else "n/a"
        ttl = describe_ttl(int(detail.get("ttl", -1)))
        self.query_one("#editor-meta", Static).update(f"TTL: {ttl} · Memory: {size}")

    def set_status(self, message: str, *, severity: str) -> None:
        prefix = {
            "information": "ℹ",
            "warning": "⚠",
            "error": "✖",
            "success": "✔",
        }.get(severity, "•")
        self.query_one("#editor-status", Static).update(f"{prefix} {message}" if message else "")

    def form_payload(self) -> dict[str, Any]:
        """Current form as a ``set`` payload; raises ValueError on bad TTL input."""

        ttl_unit = self.query_one("#editor-ttl-unit", Select).value
        ttl = to_seconds(self.query_one("#editor-ttl", Input).value, str(ttl_unit))
        return {
            "key": self.query_one("#editor-key", Input).value.strip(),
            "type": str(self.query_one("#editor-type", Select).value),
            "value": self.query_one("#editor-value", TextArea).text,
            "ttl": ttl,
        }

    @staticmethod
    def _format_value(kind: KeyType, value: Any) -> str:
        if kind is KeyType.STRING:
            return "" if value is None else str(value)
        return json.dumps(value, indent=2, ensure_ascii=False)

    @on(Select.Changed, "#editor-type")
    def _handle_type_changed(self, event: Select.Changed) -> None:
        if event.value in {kind.value for kind in KeyType}:
            self.query_one("#editor-hint", Static).update(_VALUE_HINTS[KeyType(event.value)])

    @on(Button.Pressed, "#editor-save")
    def _handle_save(self, event: Button.Pressed) -> None:
        event.stop()
        try:
            payload = self.form_payload()
        except ValueError as exc:
            self.set_status(str(exc), severity="error")
            return
        if not payload["key"]:
            self.set_status("Key is required", severity="error")
            return
        self.post_message(KeySaveRequested(payload, created=self._current_key is None))

    @on(Button.Pressed, "#editor-delete")
    def _handle_delete(self, event: Button.Pressed) -> None:
        event.stop()
        if self._current_key:
            self.post_message(KeyDeleteRequested(self._current_key))


class KeySaveRequested(Message):
    def __init__(self, payload: dict[str, Any], *, created: bool) -> None:
        super().__init__()
        self.payload = payload
        self.created = created


class KeyDeleteRequested(Message):
    def __init__(self, key: str) -> None:
        super().__init__()
        self.key = key


__all__ = ["KeyDeleteRequested", "KeyEditor", "KeySaveRequested"]
