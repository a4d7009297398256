"""Connection profile registry persisted as a single JSON file."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

import pydantic
from pydantic import BaseModel, Field, field_validator

from .errors import RegistryError, ValidationError
from .models import ConnectionProfile

LOG = logging.getLogger(__name__)


class ConnectionProfileRecord(BaseModel):
    """On-disk shape of a connection profile."""

    name: str
    host: str
    port: int = Field(ge=1, le=65535)
    username: str | None = None
    password: str | None = None

    @field_validator("name", "host")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("username", "password")
    @classmethod
    def _empty_as_none(cls, value: str | None) -> str | None:
        return value or None

    def to_profile(self) -> ConnectionProfile:
        return ConnectionProfile(
            name=self.name,
            host=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
        )

    @classmethod
    def from_profile(cls, profile: ConnectionProfile) -> ConnectionProfileRecord:
        return cls.validate_payload(
            {
                "name": profile.name,
                "host": profile.host,
                "port": profile.port,
                "username": profile.username,
                "password": profile.password,
            }
        )

    @classmethod
    def validate_payload(cls, payload: Mapping[str, Any]) -> ConnectionProfileRecord:
        """Validate raw profile fields; raise ValidationError naming the bad fields."""

        try:
            return cls.model_validate(dict(payload))
        except pydantic.ValidationError as exc:
            fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
            detail = ", ".join(fields) if fields else "profile"
            raise ValidationError(f"Name, host and port are required (invalid: {detail}).") from exc


def validate_profile(payload: Mapping[str, Any] | ConnectionProfile) -> ConnectionProfile:
    """Return a validated runtime profile from a mapping or profile object."""

    if isinstance(payload, ConnectionProfile):
        return ConnectionProfileRecord.from_profile(payload).to_profile()
    return ConnectionProfileRecord.validate_payload(payload).to_profile()


class ConnectionRegistry:
    """CRUD over named profiles; every mutation rewrites the whole file."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def list(self) -> list[ConnectionProfile]:
        """Profiles in file order; a missing file is an empty list."""

        return [record.to_profile() for record in self._load()]

    def get(self, name: str) -> ConnectionProfile:
        name = name.strip()
        for profile in self.list():
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' not found.")

    def upsert(self, profile: ConnectionProfile | Mapping[str, Any]) -> ConnectionProfile:
        """Replace the profile with the same name, or append it."""

        validated = validate_profile(profile)
        record = ConnectionProfileRecord.from_profile(validated)
        entries = self._load_for_update()
        for idx, existing in enumerate(entries):
            if _entry_name(existing) == record.name:
                entries[idx] = record
                break
        else:
            entries.append(record)
        self._save(entries)
        LOG.info("Saved connection profile", extra={"profile": record.name})
        return validated

    def delete(self, name: str) -> None:
        """Remove the named profile; unknown names are a no-op."""

        name = name.strip()
        entries = self._load_for_update()
        remaining = [entry for entry in entries if _entry_name(entry) != name]
        if len(remaining) == len(entries):
            return
        self._save(remaining)
        LOG.info("Deleted connection profile", extra={"profile": name})

    def _load(self) -> list[ConnectionProfileRecord]:
        try:
            entries = self._read_entries()
        except RegistryError:
            LOG.warning("Could not read connections file", extra={"path": str(self._path)}, exc_info=True)
            return []
        return [entry for entry in entries if isinstance(entry, ConnectionProfileRecord)]

    def _load_for_update(self) -> list[Any]:
        try:
            return self._read_entries()
        except RegistryError:
            LOG.error("Refusing to rewrite unreadable connections file", extra={"path": str(self._path)})
            raise

    def _read_entries(self) -> list[Any]:
        """File entries in order; valid ones as records, the rest kept verbatim."""

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as exc:
            raise RegistryError(f"Connections file {self._path} could not be read: {exc}") from exc
        if not isinstance(raw, list):
            raise RegistryError(f"Connections file {self._path} is not a JSON array.")
        entries: list[Any] = []
        for entry in raw:
            if isinstance(entry, dict):
                try:
                    entries.append(ConnectionProfileRecord.model_validate(entry))
                    continue
                except pydantic.ValidationError:
                    LOG.warning("Keeping invalid connection profile unparsed", extra={"entry": entry.get("name")})
            entries.append(entry)
        return entries

    def _save(self, entries: list[Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [
            entry.model_dump() if isinstance(entry, ConnectionProfileRecord) else entry for entry in entries
        ]
        self._path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def _entry_name(entry: Any) -> str | None:
    if isinstance(entry, ConnectionProfileRecord):
        return entry.name
    if isinstance(entry, dict) and isinstance(entry.get("name"), str):
        return entry["name"].strip()
    return None


__all__ = [
    "ConnectionProfileRecord",
    "ConnectionRegistry",
    "validate_profile",
]
