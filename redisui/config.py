"""App configuration loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

CONFIG_DIR = Path.home() / ".config" / "redisui"
CONFIG_FILE = CONFIG_DIR / "config.toml"
CONNECTIONS_FILE = CONFIG_DIR / "connections.json"
LOG_FILE = CONFIG_DIR / "redisui.log"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LayoutState(BaseModel):
    """Persisted layout hints for the TUI."""

    sidebar_width: int | None = None


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "dark"
    page_size: int = Field(default=50, gt=0)
    search_cap: int = Field(default=1000, gt=0)
    refresh_interval: float = Field(default=0.0, ge=0)
    socket_timeout: float = Field(default=5.0, gt=0)
    demo_mode: bool = False
    active_profile: str | None = None
    connections_file: Path | None = None
    log_level: str = "WARNING"
    layout: LayoutState = Field(default_factory=LayoutState)

    def resolved_connections_file(self) -> Path:
        """Location of the profile list, honouring the config override."""

        return self.connections_file or CONNECTIONS_FILE

    def with_active_profile(self, name: str | None) -> AppConfig:
        """Return a copy with the active profile updated."""

        return self.model_copy(update={"active_profile": name})

    def with_layout(self, **updates: object) -> AppConfig:
        """Return a copy with layout state changes applied."""

        layout = self.layout.model_copy(update=updates)
        return self.model_copy(update={"layout": layout})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()
    try:
        return AppConfig(**data)
    except ValueError:
        return AppConfig()


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f'theme = "{config.theme}"',
        f"page_size = {config.page_size}",
        f"search_cap = {config.search_cap}",
        f"refresh_interval = {float(config.refresh_interval)}",
        f"socket_timeout = {float(config.socket_timeout)}",
        f"demo_mode = {str(config.demo_mode).lower()}",
        f'log_level = "{config.log_level}"',
    ]
    if config.active_profile:
        lines.append(f'active_profile = "{config.active_profile}"')
    if config.connections_file:
        lines.append(f'connections_file = "{config.connections_file.as_posix()}"')
    if config.layout.sidebar_width is not None:
        lines.append("")
        lines.append("[layout]")
        lines.append(f"sidebar_width = {config.layout.sidebar_width}")
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if not isinstance(raw, dict):
        return data
    for key in ("theme", "active_profile"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    for key in ("page_size", "search_cap"):
        value = raw.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            data[key] = value
    for key in ("refresh_interval", "socket_timeout"):
        value = raw.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            data[key] = float(value)
    demo_mode = raw.get("demo_mode")
    if isinstance(demo_mode, bool):
        data["demo_mode"] = demo_mode
    log_level = raw.get("log_level")
    if isinstance(log_level, str) and log_level.upper() in _LOG_LEVELS:
        data["log_level"] = log_level.upper()
    connections_file = raw.get("connections_file")
    if isinstance(connections_file, str) and connections_file:
        data["connections_file"] = Path(connections_file).expanduser()
    layout = raw.get("layout")
    if isinstance(layout, dict):
        state: dict[str, object] = {}
        sidebar_width = layout.get("sidebar_width")
        if isinstance(sidebar_width, int):
            state["sidebar_width"] = sidebar_width
        data["layout"] = LayoutState(**state)
    return data


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "CONNECTIONS_FILE",
    "LOG_FILE",
    "LayoutState",
    "load_config",
    "save_config",
]
