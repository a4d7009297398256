"""Sidebar widget listing saved connection profiles plus an edit form."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.message import Message
from textual.widgets import Button, Input, Label, ListItem, ListView, Static


class ConnectionSidebar(Container):
    """Displays saved profiles; selecting one requests a connection."""

    DEFAULT_CSS = """
    ConnectionSidebar {
        width: 30;
        min-width: 22;
        border-right: solid $surface-darken-1;
        padding: 1;
        height: 1fr;
        background: $surface-darken-2;
    }

    ConnectionSidebar .sidebar-heading {
        text-style: bold;
        margin-bottom: 1;
    }

    #profile-list {
        height: 8;
        border: round $primary 30%;
        margin-bottom: 1;
    }

    #profile-list .active {
        text-style: bold;
    }

    ConnectionSidebar Input {
        margin-bottom: 0;
    }

    ConnectionSidebar .profile-actions {
        height: auto;
        margin-top: 1;
    }

    ConnectionSidebar .profile-actions Button {
        width: 1fr;
    }
    """

    def __init__(self, *, width: int | None = None) -> None:
        super().__init__(id="connection-sidebar")
        if width:
            self.styles.width = width
        self._profile_list: ListView | None = None
        self._active: str | None = None

    def compose(self) -> ComposeResult:
        yield Static("Connections", classes="sidebar-heading")
        self._profile_list = ListView(id="profile-list")
        yield self._profile_list
        yield Static("Profile", classes="sidebar-heading")
        yield Input(placeholder="Name", id="profile-name")
        yield Input(placeholder="Host", value="localhost", id="profile-host")
        yield Input(placeholder="Port", value="6379", id="profile-port", type="integer")
        yield Input(placeholder="Username (optional)", id="profile-username")
        yield Input(placeholder="Password (optional)", id="profile-password", password=True)
        yield Horizontal(
            Button("Save", id="profile-save", variant="primary"),
            Button("Delete", id="profile-delete", variant="error"),
            classes="profile-actions",
        )

    async def set_profiles(self, profiles: Sequence[Mapping[str, Any]], active: str | None = None) -> None:
        """Replace the list contents with ``profiles``."""

        if self._profile_list is None:
            return
        self._active = active
        await self._profile_list.clear()
        items = [_ProfileListItem(dict(profile)) for profile in profiles]
        if items:
            await self._profile_list.extend(items)
        self._mark_active()

    def set_active(self, name: str | None) -> None:
        self._active = name
        self._mark_active()

    def form_payload(self) -> dict[str, Any]:
        """Current form values as a profile payload."""

        return {
            "name": self.query_one("#profile-name", Input).value,
            "host": self.query_one("#profile-host", Input).value,
            "port": self.query_one("#profile-port", Input).value or None,
            "username": self.query_one("#profile-username", Input).value or None,
            "password": self.query_one("#profile-password", Input).value or None,
        }

    def fill_form(self, profile: Mapping[str, Any]) -> None:
        self.query_one("#profile-name", Input).value = str(profile.get("name") or "")
        self.query_one("#profile-host", Input).value = str(profile.get("host") or "")
        port = profile.get("port")
        self.query_one("#profile-port", Input).value = "" if port is None else str(port)
        self.query_one("#profile-username", Input).value = str(profile.get("username") or "")
        self.query_one("#profile-password", Input).value = str(profile.get("password") or "")

    def _mark_active(self) -> None:
        if self._profile_list is None:
            return
        for child in self._profile_list.children:
            if isinstance(child, _ProfileListItem):
                child.set_class(child.profile_name == self._active, "active")

    async def on_resize(self, event: events.Resize) -> None:
        self._report_width(event.size.width)

    def _report_width(self, width: int) -> None:
        remember = getattr(self.app, "remember_sidebar_width", None)
        if remember is None:
            return
        if width > 0:
            remember(width)

    @on(ListView.Selected, "#profile-list")
    def _handle_profile_selected(self, event: ListView.Selected) -> None:
        item = event.item
        if isinstance(item, _ProfileListItem):
            self.fill_form(item.profile)
            self.post_message(ProfileSelected(item.profile_name))
            event.stop()

    @on(Button.Pressed, "#profile-save")
    def _handle_save(self, event: Button.Pressed) -> None:
        self.post_message(ProfileSaveRequested(self.form_payload()))
        event.stop()

    @on(Button.Pressed, "#profile-delete")
    def _handle_delete(self, event: Button.Pressed) -> None:
        name = self.query_one("#profile-name", Input).value.strip()
        if name:
            self.post_message(ProfileDeleteRequested(name))
        event.stop()


class _ProfileListItem(ListItem):
    """List item storing the profile it renders."""

    def __init__(self, profile: dict[str, Any]) -> None:
        name = str(profile.get("name", ""))
        super().__init__(Label(f"{name}  {profile.get('host')}:{profile.get('port')}"))
        self.profile = profile
        self.profile_name = name


class ProfileSelected(Message):
    """Message fired when a profile is picked from the list."""

    def __init__(self, profile_name: str) -> None:
        super().__init__()
        self.profile_name = profile_name


class ProfileSaveRequested(Message):
    def __init__(self, payload: dict[str, Any]) -> None:
        super().__init__()
        self.payload = payload


class ProfileDeleteRequested(Message):
    def __init__(self, profile_name: str) -> None:
        super().__init__()
        self.profile_name = profile_name


__all__ = [
    "ConnectionSidebar",
    "ProfileDeleteRequested",
    "ProfileSaveRequested",
    "ProfileSelected",
]
