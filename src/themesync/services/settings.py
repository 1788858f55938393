"""Engine configuration dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from ..routes import DEFAULT_ROUTE_OVERRIDES
from ..theme.models import ThemeId
from ..utils.logging import parse_level

__all__ = ["EngineSettings", "SettingsStore"]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".themesync"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_DEFAULT_STORAGE_PATH = _SETTINGS_DIR / "storage.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "THEMESYNC_DEFAULT_THEME": "default_theme",
    "THEMESYNC_STORAGE_PATH": "storage_path",
    "THEMESYNC_COOKIE_PATH": "cookie_path",
    "THEMESYNC_COOKIE_SAME_SITE": "cookie_same_site",
    "THEMESYNC_LOG_LEVEL": "log_level",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "THEMESYNC_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "THEMESYNC_REMOTE_TIMEOUT": "remote_timeout",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "THEMESYNC_TRANSITION_MS": "transition_duration_ms",
    "THEMESYNC_COOKIE_MAX_AGE_DAYS": "cookie_max_age_days",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


def _default_route_overrides() -> dict[str, str]:
    return {route: theme.value for route, theme in DEFAULT_ROUTE_OVERRIDES.items()}


@dataclass(slots=True)
class EngineSettings:
    """Tunable engine configuration persisted between sessions."""

    default_theme: str = ThemeId.LIGHT.value
    transition_duration_ms: int = 500
    cookie_max_age_days: int = 365
    cookie_path: str = "/"
    cookie_same_site: str = "Strict"
    remote_timeout: float = 5.0
    storage_path: str = str(_DEFAULT_STORAGE_PATH)
    route_overrides: dict[str, str] = field(default_factory=_default_route_overrides)
    debug_logging: bool = False
    log_level: str = "WARNING"
    log_dir: str = ""

    @property
    def default_theme_id(self) -> ThemeId:
        return ThemeId.coerce(self.default_theme) or ThemeId.LIGHT


class SettingsStore:
    """Persistence adapter for :class:`EngineSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> EngineSettings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = EngineSettings()
        if payload:
            data = _filter_fields(payload)
            routes = data.get("route_overrides")
            if routes is not None and not isinstance(routes, Mapping):
                LOGGER.warning("Ignoring route_overrides that is not an object: %r", routes)
                data.pop("route_overrides")
            try:
                settings = EngineSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = EngineSettings()
            if payload.get("version") != _SETTINGS_VERSION:
                LOGGER.debug("Settings file %s has version %r", self._path, payload.get("version"))

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")

        settings = self._apply_env_overrides(settings)
        return self._validate(settings)

    def save(self, settings: EngineSettings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = asdict(settings)
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: EngineSettings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> EngineSettings:
        allowed = {item.name for item in fields(EngineSettings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: EngineSettings) -> EngineSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings

    def _validate(self, settings: EngineSettings) -> EngineSettings:
        if ThemeId.coerce(settings.default_theme) is None:
            LOGGER.warning(
                "Unknown default theme %r; falling back to %s",
                settings.default_theme,
                ThemeId.LIGHT.value,
            )
            settings = replace(settings, default_theme=ThemeId.LIGHT.value)
        if settings.transition_duration_ms < 0:
            settings = replace(settings, transition_duration_ms=0)
        if settings.remote_timeout <= 0:
            LOGGER.warning("remote_timeout must be positive; using 5.0")
            settings = replace(settings, remote_timeout=5.0)
        try:
            parse_level(settings.log_level)
        except ValueError:
            LOGGER.warning("Unknown log_level %r; using WARNING", settings.log_level)
            settings = replace(settings, log_level="WARNING")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(EngineSettings)}
    return {key: value for key, value in payload.items() if key in allowed}
