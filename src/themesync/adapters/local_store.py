"""Device-local key/value storage modelled on the browser's ``localStorage``."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping

from ..errors import MalformedValueError, SourceUnavailableError
from ..theme.models import ThemeId
from .base import PreferenceAdapter, encode_flag

LOGGER = logging.getLogger(__name__)

THEME_KEY = "theme"
AUTO_THEME_KEY = "autoTheme"
USER_ID_KEY = "userId"
USER_THEMES_KEY = "userThemesDB"


class LocalDeviceStore(PreferenceAdapter):
    """String items kept in memory or in a JSON file on disk.

    With a ``path`` every mutation is written through with an atomic
    temp-file replace; without one the items only live as long as the object.
    """

    name = "local_storage"

    def __init__(self, path: Path | str | None = None, *, available: bool = True) -> None:
        self._path = Path(path).expanduser() if path is not None else None
        self._available = available
        self._items: Dict[str, str] | None = None if self._path is not None else {}

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def available(self) -> bool:
        return self._available

    def set_available(self, available: bool) -> None:
        self._available = bool(available)

    # ------------------------------------------------------------------
    # Storage API
    # ------------------------------------------------------------------
    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = dict(self._load())
        items[key] = str(value)
        self._commit(items)

    def remove_item(self, key: str) -> None:
        items = dict(self._load())
        if items.pop(key, None) is not None:
            self._commit(items)

    def keys(self) -> list[str]:
        return sorted(self._load())

    def clear(self) -> None:
        self._commit({})

    # ------------------------------------------------------------------
    # Preference adapter
    # ------------------------------------------------------------------
    def read_theme(self) -> str | None:
        return self.get_item(THEME_KEY)

    def read_auto_mode(self) -> str | None:
        return self.get_item(AUTO_THEME_KEY)

    def write_theme(self, theme: ThemeId) -> None:
        self.set_item(THEME_KEY, ThemeId(theme).value)

    def write_auto_mode(self, enabled: bool) -> None:
        self.set_item(AUTO_THEME_KEY, encode_flag(enabled))

    def read_identity(self) -> str | None:
        identity = self.get_item(USER_ID_KEY)
        if identity is None:
            return None
        identity = identity.strip()
        return identity or None

    def write_identity(self, identity: str | None) -> None:
        identity = (identity or "").strip()
        if identity:
            self.set_item(USER_ID_KEY, identity)
        else:
            self.remove_item(USER_ID_KEY)

    def read_user_themes(self) -> Dict[str, str]:
        raw = self.get_item(USER_THEMES_KEY)
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedValueError(
                message=f"{USER_THEMES_KEY} is not valid JSON: {exc}",
                source=self.name,
                value=raw,
            ) from exc
        if not isinstance(payload, Mapping):
            raise MalformedValueError(
                message=f"{USER_THEMES_KEY} must be a JSON object", source=self.name, value=raw
            )
        return {str(key): str(value) for key, value in payload.items()}

    def write_user_themes(self, mapping: Mapping[str, str]) -> None:
        self.set_item(USER_THEMES_KEY, json.dumps(dict(mapping), sort_keys=True))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _require_available(self) -> None:
        if not self._available:
            raise SourceUnavailableError(message="Local storage is unavailable", source=self.name)

    def _load(self) -> Dict[str, str]:
        self._require_available()
        if self._items is not None:
            return self._items
        assert self._path is not None
        self._items = self._read_file(self._path)
        return self._items

    def _read_file(self, path: Path) -> Dict[str, str]:
        if not path.exists():
            return {}
        try:
            payload: Any = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise SourceUnavailableError(
                message=f"Unable to read {path}: {exc}", source=self.name
            ) from exc
        except json.JSONDecodeError as exc:
            LOGGER.warning("Local storage file %s is not valid JSON: %s", path, exc)
            return {}
        if not isinstance(payload, Mapping):
            LOGGER.warning("Local storage file %s does not contain an object; ignoring", path)
            return {}
        return {str(key): str(value) for key, value in payload.items() if value is not None}

    def _commit(self, items: Dict[str, str]) -> None:
        self._require_available()
        if self._path is not None:
            body = json.dumps(items, indent=2, sort_keys=True)
            tmp_path = self._path.with_suffix(".tmp")
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(body, encoding="utf-8")
                tmp_path.replace(self._path)
            except OSError as exc:
                raise SourceUnavailableError(
                    message=f"Unable to write {self._path}: {exc}", source=self.name
                ) from exc
            LOGGER.debug("Local storage saved to %s: keys=%s", self._path, sorted(items))
        self._items = items


__all__ = [
    "AUTO_THEME_KEY",
    "LocalDeviceStore",
    "THEME_KEY",
    "USER_ID_KEY",
    "USER_THEMES_KEY",
]
