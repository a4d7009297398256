"""TTL unit helpers used by the key editor."""

from __future__ import annotations

from enum import Enum


class TtlUnit(str, Enum):
    NONE = "none"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


_FACTORS: dict[TtlUnit, int] = {
    TtlUnit.DAYS: 86400,
    TtlUnit.HOURS: 3600,
    TtlUnit.MINUTES: 60,
    TtlUnit.SECONDS: 1,
}

NO_EXPIRY = -1


def to_seconds(amount: int | str | None, unit: TtlUnit | str) -> int:
    """Convert an editor (amount, unit) pair into seconds; -1 means no expiry."""

    unit = TtlUnit(unit)
    if unit is TtlUnit.NONE or amount in (None, ""):
        return NO_EXPIRY
    value = int(amount)
    if value <= 0:
        raise ValueError("TTL must be a positive number.")
    return value * _FACTORS[unit]


def split_ttl(seconds: int) -> tuple[int | None, TtlUnit]:
    """Express a TTL in the largest whole unit (floor), as the editor shows it."""

    if seconds < 0:
        return None, TtlUnit.NONE
    for unit, factor in _FACTORS.items():
        if seconds >= factor:
            return seconds // factor, unit
    return seconds, TtlUnit.SECONDS


def describe_ttl(seconds: int) -> str:
    amount, unit = split_ttl(seconds)
    if unit is TtlUnit.NONE:
        return "No expiry"
    return f"{amount} {unit.value}"


__all__ = ["NO_EXPIRY", "TtlUnit", "describe_ttl", "split_ttl", "to_seconds"]
