"""Tests for the export/import snapshot format."""

from __future__ import annotations

import json
import re
from pathlib import Path

import pytest

from themesync.errors import InvalidSnapshotError, MalformedValueError
from themesync.services.snapshot import (
    DEFAULT_EXPORT_FILENAME,
    ThemeSnapshot,
    parse_snapshot,
    read_snapshot,
)
from themesync.theme.models import ThemeId


def test_snapshot_serializes_expected_shape() -> None:
    snapshot = ThemeSnapshot(base_theme=ThemeId.HIGH_CONTRAST, auto_mode=False)

    payload = snapshot.to_dict()

    assert payload["currentTheme"] == "highContrast"
    assert payload["autoTheme"] is False
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", payload["timestamp"])
    assert snapshot.to_json().startswith('{\n  "currentTheme"')


def test_write_into_directory_uses_default_filename(tmp_path: Path) -> None:
    path = ThemeSnapshot(base_theme=ThemeId.DARK).write(tmp_path)

    assert path == tmp_path / DEFAULT_EXPORT_FILENAME
    assert read_snapshot(path).base_theme is ThemeId.DARK


def test_parse_accepts_mapping_text_and_bytes() -> None:
    payload = {"currentTheme": "dark", "autoTheme": True, "timestamp": "2026-01-01T00:00:00.000Z"}

    for candidate in (payload, json.dumps(payload), json.dumps(payload).encode("utf-8")):
        snapshot = parse_snapshot(candidate)
        assert snapshot == ThemeSnapshot(ThemeId.DARK, True, "2026-01-01T00:00:00.000Z")


def test_missing_auto_flag_defaults_to_false() -> None:
    assert parse_snapshot({"currentTheme": "light"}).auto_mode is False


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[]",
        {"autoTheme": True},
        {"currentTheme": 3},
        {"currentTheme": ""},
        {"currentTheme": "dark", "autoTheme": "yes"},
    ],
)
def test_malformed_payloads_are_rejected(payload: object) -> None:
    with pytest.raises(InvalidSnapshotError) as excinfo:
        parse_snapshot(payload)  # type: ignore[arg-type]

    assert excinfo.value.error_code == "invalid_snapshot"
    assert isinstance(excinfo.value, MalformedValueError)


def test_unknown_theme_is_rejected_with_known_list() -> None:
    with pytest.raises(InvalidSnapshotError) as excinfo:
        parse_snapshot({"currentTheme": "neon", "autoTheme": False})

    assert "neon" in excinfo.value.message
    assert excinfo.value.details["known"] == ["light", "dark", "highContrast"]


def test_read_missing_file_is_invalid(tmp_path: Path) -> None:
    with pytest.raises(InvalidSnapshotError):
        read_snapshot(tmp_path / "missing.json")
