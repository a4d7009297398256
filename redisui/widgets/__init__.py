"""Widget library for the Textual UI."""

from __future__ import annotations

from .connection_sidebar import ConnectionSidebar, ProfileDeleteRequested, ProfileSaveRequested, ProfileSelected
from .key_browser import KeyBrowser, KeySearchRequested, KeySelected, KeysRequested
from .key_editor import KeyDeleteRequested, KeyEditor, KeySaveRequested
from .status_bar import StatusBar

__all__ = [
    "ConnectionSidebar",
    "KeyBrowser",
    "KeyDeleteRequested",
    "KeyEditor",
    "KeySaveRequested",
    "KeySearchRequested",
    "KeySelected",
    "KeysRequested",
    "ProfileDeleteRequested",
    "ProfileSaveRequested",
    "ProfileSelected",
    "StatusBar",
]
