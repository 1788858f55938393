"""Export/import format for a user's theme preference."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Dict, Mapping

from jsonschema import Draft7Validator, ValidationError

from ..errors import InvalidSnapshotError
from ..theme.models import ThemeId

DEFAULT_EXPORT_FILENAME = "theme-settings.json"

SNAPSHOT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["currentTheme"],
    "properties": {
        "currentTheme": {"type": "string", "minLength": 1},
        "autoTheme": {"type": "boolean"},
        "timestamp": {"type": "string"},
    },
    "additionalProperties": True,
}

_SNAPSHOT_VALIDATOR = Draft7Validator(SNAPSHOT_SCHEMA)


def _timestamp_now() -> str:
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class ThemeSnapshot:
    """Serializable preference state: ``{currentTheme, autoTheme, timestamp}``."""

    base_theme: ThemeId
    auto_mode: bool = False
    timestamp: str = field(default_factory=_timestamp_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentTheme": self.base_theme.value,
            "autoTheme": self.auto_mode,
            "timestamp": self.timestamp,
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def write(self, destination: str | Path) -> Path:
        path = Path(destination)
        if path.is_dir():
            path = path / DEFAULT_EXPORT_FILENAME
        path.write_text(self.to_json(), encoding="utf-8")
        return path


def parse_snapshot(payload: ThemeSnapshot | Mapping[str, Any] | str | bytes) -> ThemeSnapshot:
    """Validate ``payload`` and return the snapshot it describes.

    Raises:
        InvalidSnapshotError: on unparsable JSON, a schema violation, or an
            unknown theme identifier.
    """

    if isinstance(payload, ThemeSnapshot):
        return payload
    data = _coerce_payload(payload)
    try:
        _SNAPSHOT_VALIDATOR.validate(data)
    except ValidationError as error:
        raise InvalidSnapshotError(
            message=f"Invalid theme file: {_format_validation_error(error)}",
            value=data,
        ) from error

    raw_theme = data["currentTheme"]
    theme_id = ThemeId.coerce(raw_theme)
    if theme_id is None:
        raise InvalidSnapshotError(
            message=f"Invalid theme file: unknown theme {raw_theme!r}",
            value=raw_theme,
            details={"known": list(ThemeId.values())},
        )
    timestamp = data.get("timestamp")
    return ThemeSnapshot(
        base_theme=theme_id,
        auto_mode=bool(data.get("autoTheme", False)),
        timestamp=timestamp if isinstance(timestamp, str) else _timestamp_now(),
    )


def read_snapshot(source: str | Path) -> ThemeSnapshot:
    path = Path(source)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidSnapshotError(message=f"Unable to read theme file {path}: {exc}") from exc
    return parse_snapshot(text)


def _coerce_payload(payload: Mapping[str, Any] | str | bytes) -> Dict[str, Any]:
    if isinstance(payload, Mapping):
        return dict(payload)
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidSnapshotError(message="Invalid theme file: not UTF-8 text") from exc
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except JSONDecodeError as exc:
            raise InvalidSnapshotError(message=f"Invalid theme file: {exc.msg}") from exc
        if not isinstance(data, dict):
            raise InvalidSnapshotError(message="Invalid theme file: root must be an object", value=data)
        return data
    raise InvalidSnapshotError(message="Theme snapshot must be a mapping or JSON text", value=payload)


def _format_validation_error(error: ValidationError) -> str:
    path = ".".join(str(part) for part in error.path)
    if path:
        return f"{path}: {error.message}"
    return error.message


__all__ = [
    "DEFAULT_EXPORT_FILENAME",
    "SNAPSHOT_SCHEMA",
    "ThemeSnapshot",
    "parse_snapshot",
    "read_snapshot",
]
