"""Error taxonomy shared by the gateway, registry and scan controller."""

from __future__ import annotations


class RedisUiError(RuntimeError):
    """Base error for redisui failures."""


class NotConnectedError(RedisUiError):
    """Raised when an operation needs a live store connection and none exists."""


class ConnectError(RedisUiError):
    """Raised when a profile cannot be connected (unreachable, auth rejected)."""


class UpstreamError(RedisUiError):
    """Raised when the store fails while executing a command."""


class RegistryError(RedisUiError):
    """Raised when the connections file exists but cannot be parsed."""


class ValidationError(RedisUiError, ValueError):
    """Raised when a connection profile is missing required fields."""


__all__ = [
    "ConnectError",
    "NotConnectedError",
    "RedisUiError",
    "RegistryError",
    "UpstreamError",
    "ValidationError",
]
