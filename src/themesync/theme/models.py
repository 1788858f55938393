"""Data structures describing themes and their color palettes."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Sequence, Tuple

from ..errors import MalformedValueError

ColorTuple = Tuple[int, int, int]
PaletteLike = Mapping[str, Any] | Sequence[tuple[str, Any]]

PALETTE_ROLES: tuple[str, ...] = (
    "background",
    "secondary-background",
    "text",
    "secondary-text",
    "accent",
    "accent-hover",
    "border",
    "shadow",
)

_HEX_RE = re.compile(r"^#?(?P<body>[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_FUNCTIONAL_RE = re.compile(r"^(?P<fn>rgba?)\(\s*(?P<args>[^)]*)\)$", re.IGNORECASE)


class ThemeId(str, Enum):
    """Closed set of themes the engine knows how to render."""

    LIGHT = "light"
    DARK = "dark"
    HIGH_CONTRAST = "highContrast"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def coerce(cls, value: Any) -> "ThemeId | None":
        """Return the matching member, or ``None`` for unknown input."""

        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip())
        except ValueError:
            return None

    @classmethod
    def parse(cls, value: Any, *, source: str | None = None) -> "ThemeId":
        theme_id = cls.coerce(value)
        if theme_id is None:
            raise MalformedValueError(
                message=f"{value!r} is not a known theme",
                source=source,
                value=value,
            )
        return theme_id

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


def _clamp_channel(value: Any) -> int:
    channel = int(value)
    if channel < 0:
        return 0
    if channel > 255:
        return 255
    return channel


def _clamp_alpha(value: Any) -> float:
    alpha = float(value)
    return min(1.0, max(0.0, alpha))


def _tuple_to_hex(value: ColorTuple) -> str:
    return "#" + "".join(f"{component:02x}" for component in value)


def normalize_color(value: Any) -> str:
    """Convert ``value`` into a canonical CSS color string.

    Accepts ``#rgb``/``#rrggbb`` hex strings, ``rgb()``/``rgba()`` functional
    notation, or a sequence of three channel values.
    """

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Color strings cannot be empty")
        hex_match = _HEX_RE.match(text)
        if hex_match:
            body = hex_match.group("body").lower()
            if len(body) == 3:
                body = "".join(ch * 2 for ch in body)
            return f"#{body}"
        functional = _FUNCTIONAL_RE.match(text)
        if functional:
            fn = functional.group("fn").lower()
            parts = [part.strip() for part in functional.group("args").split(",")]
            if fn == "rgb" and len(parts) == 3:
                return _tuple_to_hex(tuple(_clamp_channel(part) for part in parts))  # type: ignore[arg-type]
            if fn == "rgba" and len(parts) == 4:
                r, g, b = (_clamp_channel(part) for part in parts[:3])
                alpha = _clamp_alpha(parts[3])
                return f"rgba({r}, {g}, {b}, {alpha:g})"
            raise ValueError(f"Color '{value}' has the wrong number of components")
        raise ValueError(f"Unsupported color format: {value!r}")

    if isinstance(value, Sequence):
        items = list(value)
        if len(items) != 3:
            raise ValueError(f"RGB sequences must contain 3 values, received {value!r}")
        return _tuple_to_hex(tuple(_clamp_channel(component) for component in items))  # type: ignore[arg-type]

    raise TypeError(f"Cannot convert {type(value)!r} to a CSS color")


def _normalize_palette(palette: PaletteLike | None) -> Dict[str, str]:
    normalized: Dict[str, str] = {}
    if palette is None:
        return normalized
    items: Sequence[tuple[str, Any]]
    if isinstance(palette, Mapping):
        items = list(palette.items())
    else:
        items = list(palette)
    for key, value in items:
        if key is None:
            continue
        normalized[key.strip().lower()] = normalize_color(value)
    missing = [role for role in PALETTE_ROLES if role not in normalized]
    if missing:
        raise ValueError(f"Palette is missing roles: {', '.join(missing)}")
    # Role order is part of the CSS contract.
    ordered = {role: normalized.pop(role) for role in PALETTE_ROLES}
    ordered.update(normalized)
    return ordered


@dataclass(frozen=True, slots=True)
class Theme:
    """Immutable palette bound to a theme identifier."""

    theme_id: ThemeId
    title: str
    palette: Mapping[str, str] = field(default_factory=dict)
    description: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "theme_id", ThemeId.parse(self.theme_id, source="palette"))
        object.__setattr__(self, "title", (self.title or self.theme_id.value).strip())
        object.__setattr__(self, "palette", MappingProxyType(_normalize_palette(self.palette)))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata or {})))

    @property
    def name(self) -> str:
        return self.theme_id.value

    @property
    def appearance(self) -> str:
        return str(self.metadata.get("appearance", "light"))

    def color(self, role: str) -> str:
        lookup = role.strip().lower()
        try:
            return self.palette[lookup]
        except KeyError:
            raise KeyError(f"Theme '{self.name}' has no color for role '{role}'") from None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.name,
            "title": self.title,
            "description": self.description,
            "metadata": dict(self.metadata),
            "palette": dict(self.palette),
        }

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Theme":
        if "id" not in payload:
            raise ValueError("Theme payload missing 'id'")
        description = payload.get("description")
        return cls(
            theme_id=payload["id"],
            title=str(payload.get("title") or payload["id"]),
            palette=payload.get("palette") or {},
            description=str(description) if description is not None else None,
            metadata=dict(payload.get("metadata") or {}),
        )


__all__ = ["PALETTE_ROLES", "Theme", "ThemeId", "normalize_color"]
