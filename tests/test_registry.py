"""Tests for the connection profile registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from redisui.errors import RegistryError, ValidationError
from redisui.models import ConnectionProfile
from redisui.registry import ConnectionRegistry, validate_profile


def test_missing_file_lists_nothing(tmp_path: Path) -> None:
    registry = ConnectionRegistry(tmp_path / "connections.json")

    assert registry.list() == []


def test_upsert_appends_then_replaces_by_name(tmp_path: Path) -> None:
    registry = ConnectionRegistry(tmp_path / "connections.json")

    registry.upsert({"name": "Local", "host": "localhost", "port": 6379})
    registry.upsert({"name": "Cache", "host": "cache.internal", "port": 6380})
    registry.upsert({"name": "Local", "host": "127.0.0.1", "port": 6390})

    profiles = registry.list()
    assert [profile.name for profile in profiles] == ["Local", "Cache"]
    assert profiles[0] == ConnectionProfile(name="Local", host="127.0.0.1", port=6390)


def test_upsert_persists_json_array(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "connections.json"
    registry = ConnectionRegistry(path)

    registry.upsert(ConnectionProfile(name="Local", password="secret"))

    stored = json.loads(path.read_text())
    assert stored == [
        {"name": "Local", "host": "localhost", "port": 6379, "username": None, "password": "secret"}
    ]


def test_delete_unknown_name_is_noop(tmp_path: Path) -> None:
    path = tmp_path / "connections.json"
    registry = ConnectionRegistry(path)
    registry.upsert({"name": "Local", "host": "localhost", "port": 6379})
    before = path.read_text()

    registry.delete("Missing")

    assert path.read_text() == before


def test_save_then_delete_leaves_empty_list(tmp_path: Path) -> None:
    registry = ConnectionRegistry(tmp_path / "connections.json")

    registry.upsert({"name": "Local", "host": "localhost", "port": 6379})
    registry.delete("Local")

    assert registry.list() == []


def test_get_unknown_profile_raises(tmp_path: Path) -> None:
    registry = ConnectionRegistry(tmp_path / "connections.json")

    with pytest.raises(ValueError, match="not found"):
        registry.get("Local")


def test_corrupt_file_is_treated_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "connections.json"
    path.write_text("{not json")
    registry = ConnectionRegistry(path)

    assert registry.list() == []


def test_corrupt_file_is_never_overwritten(tmp_path: Path) -> None:
    path = tmp_path / "connections.json"
    original = '[{"name": "Local", "host": "localhost",'
    path.write_text(original)
    registry = ConnectionRegistry(path)

    with pytest.raises(RegistryError):
        registry.upsert({"name": "New", "host": "localhost", "port": 6379})
    with pytest.raises(RegistryError):
        registry.delete("Local")

    assert path.read_text() == original


def test_invalid_entries_are_skipped_but_kept_on_write(tmp_path: Path) -> None:
    path = tmp_path / "connections.json"
    path.write_text(
        json.dumps(
            [
                {"name": "Good", "host": "localhost", "port": 6379},
                {"name": "Bad", "host": "", "port": 6379},
                "junk",
            ]
        )
    )
    registry = ConnectionRegistry(path)

    assert [profile.name for profile in registry.list()] == ["Good"]

    registry.upsert({"name": "New", "host": "localhost", "port": 6380})

    stored = json.loads(path.read_text())
    assert stored[1:3] == [{"name": "Bad", "host": "", "port": 6379}, "junk"]
    assert [entry["name"] for entry in (stored[0], stored[3])] == ["Good", "New"]


def test_upsert_replaces_unparsed_entry_with_same_name(tmp_path: Path) -> None:
    path = tmp_path / "connections.json"
    path.write_text(json.dumps([{"name": "Legacy", "host": "", "port": 6379}]))
    registry = ConnectionRegistry(path)

    registry.upsert({"name": "Legacy", "host": "localhost", "port": 6379})

    assert registry.list() == [ConnectionProfile(name="Legacy")]


def test_names_are_matched_after_trimming(tmp_path: Path) -> None:
    registry = ConnectionRegistry(tmp_path / "connections.json")
    registry.upsert({"name": " Local ", "host": "localhost", "port": 6379})

    assert registry.get(" Local").name == "Local"

    registry.delete(" Local ")

    assert registry.list() == []


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "Local", "port": 6379},
        {"name": "  ", "host": "localhost", "port": 6379},
        {"name": "Local", "host": "localhost", "port": 0},
        {"name": "Local", "host": "localhost", "port": "abc"},
    ],
)
def test_validate_profile_rejects_bad_payloads(payload: dict[str, object]) -> None:
    with pytest.raises(ValidationError, match="Name, host and port are required"):
        validate_profile(payload)


def test_validate_profile_normalises_fields() -> None:
    profile = validate_profile({"name": " Local ", "host": "localhost", "port": "6379", "username": ""})

    assert profile == ConnectionProfile(name="Local", host="localhost", port=6379)
