"""Command palette providers for core app features."""

from __future__ import annotations

from typing import Any

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType


class ProfileConnectProvider(Provider):
    """Expose saved connection profiles to the command palette."""

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        for name in self._profile_names:
            match = matcher.match(name)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Connect to: {matcher.highlight(name)}",
                    command=self._build_callback(name),
                    help="Open a connection using this profile.",
                )

    async def discover(self) -> Hits:
        for name in self._profile_names:
            yield DiscoveryHit(
                display=f"Connect to: {name}",
                command=self._build_callback(name),
                help="Open a connection using this profile.",
            )

    @property
    def _profile_names(self) -> tuple[str, ...]:
        names = getattr(self.app, "profile_names", None)
        if names is None:
            return ()
        return tuple(names)

    def _build_callback(self, name: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            connect = getattr(self.app, "connect_profile", None)
            if connect is None:
                return
            await connect(name)

        return _run


class KeyReloadProvider(Provider):
    """Expose a reload action for the key list."""

    _LABEL = "Reload keys from the first page"

    async def search(self, query: str) -> Hits:
        if not self._can_reload:
            return
        matcher = self.matcher(query)
        score = matcher.match(self._LABEL)
        if score > 0:
            yield Hit(
                score=score,
                match_display=matcher.highlight(self._LABEL),
                command=self._build_callback(),
                help="Trigger Ctrl+R equivalent reload.",
            )

    async def discover(self) -> Hits:
        if not self._can_reload:
            return
        yield DiscoveryHit(
            display=self._LABEL,
            command=self._build_callback(),
            help="Trigger Ctrl+R equivalent reload.",
        )

    @property
    def _can_reload(self) -> bool:
        return bool(getattr(self.app, "is_connected", False))

    def _build_callback(self) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            reload: Any = getattr(self.app, "load_keys", None)
            if reload is None:
                return
            await reload(restart=True)

        return _run


__all__ = ["KeyReloadProvider", "ProfileConnectProvider"]
