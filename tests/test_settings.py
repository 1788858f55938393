"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from themesync.services.settings import EngineSettings, SettingsStore
from themesync.theme.models import ThemeId


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings == EngineSettings()
    assert settings.default_theme_id is ThemeId.LIGHT
    assert settings.route_overrides == {
        "/trailers": "dark",
        "/docs": "light",
        "/accessibility": "highContrast",
    }


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    original = EngineSettings(
        default_theme="dark",
        transition_duration_ms=250,
        cookie_max_age_days=30,
        remote_timeout=1.5,
        storage_path=str(tmp_path / "storage.json"),
        route_overrides={"/cinema": "dark"},
        debug_logging=True,
    )

    SettingsStore(path).save(original)
    reloaded = SettingsStore(path).load()

    assert reloaded == original
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert not path.with_suffix(".tmp").exists()


def test_invalid_json_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{broken", encoding="utf-8")

    settings = SettingsStore(path).load()

    assert settings == EngineSettings()
    assert "not valid JSON" in caplog.text


def test_unknown_fields_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"default_theme": "dark", "legacy": 1}), encoding="utf-8")

    assert SettingsStore(path).load().default_theme == "dark"


def test_cli_overrides_then_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(EngineSettings(default_theme="dark"))
    monkeypatch.setenv("THEMESYNC_TRANSITION_MS", "120")
    monkeypatch.setenv("THEMESYNC_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("THEMESYNC_REMOTE_TIMEOUT", "2.5")

    settings = SettingsStore(path).load(overrides={"default_theme": "light", "transition_duration_ms": 900})

    assert settings.default_theme == "light"
    assert settings.transition_duration_ms == 120
    assert settings.debug_logging is True
    assert settings.remote_timeout == 2.5


def test_invalid_env_numbers_are_ignored(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("THEMESYNC_TRANSITION_MS", "fast")
    monkeypatch.setenv("THEMESYNC_REMOTE_TIMEOUT", "soon")

    settings = SettingsStore(tmp_path / "settings.json").load()

    assert settings.transition_duration_ms == 500
    assert settings.remote_timeout == 5.0


def test_validation_repairs_out_of_range_values(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(
        replace(EngineSettings(), default_theme="neon", transition_duration_ms=-5, remote_timeout=0)
    )

    settings = SettingsStore(path).load()

    assert settings.default_theme == "light"
    assert settings.transition_duration_ms == 0
    assert settings.remote_timeout == 5.0


def test_log_level_env_override_and_validation(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("THEMESYNC_LOG_LEVEL", "info")
    assert SettingsStore(tmp_path / "settings.json").load().log_level == "info"

    monkeypatch.setenv("THEMESYNC_LOG_LEVEL", "chatty")
    assert SettingsStore(tmp_path / "settings.json").load().log_level == "WARNING"
