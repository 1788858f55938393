"""Registry of the built-in palettes."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

from ..errors import InvalidThemeError
from .models import Theme, ThemeId

_LIGHT_PALETTE: Dict[str, str] = {
    "background": "#ffffff",
    "secondary-background": "#f3f4f6",
    "text": "#111827",
    "secondary-text": "#6b7280",
    "accent": "#3b82f6",
    "accent-hover": "#2563eb",
    "border": "#e5e7eb",
    "shadow": "rgba(0, 0, 0, 0.1)",
}

_DARK_PALETTE: Dict[str, str] = {
    "background": "#0f172a",
    "secondary-background": "#1e293b",
    "text": "#f1f5f9",
    "secondary-text": "#94a3b8",
    "accent": "#3b82f6",
    "accent-hover": "#2563eb",
    "border": "#334155",
    "shadow": "rgba(0, 0, 0, 0.3)",
}

_HIGH_CONTRAST_PALETTE: Dict[str, str] = {
    "background": "#000000",
    "secondary-background": "#1a1a1a",
    "text": "#ffffff",
    "secondary-text": "#cccccc",
    "accent": "#00ff00",
    "accent-hover": "#00cc00",
    "border": "#ffffff",
    "shadow": "rgba(255, 255, 255, 0.2)",
}


def build_light_theme() -> Theme:
    return Theme(
        theme_id=ThemeId.LIGHT,
        title="Light",
        description="A bright theme suited for well-lit rooms.",
        palette=_LIGHT_PALETTE,
        metadata={"appearance": "light"},
    )


def build_dark_theme() -> Theme:
    return Theme(
        theme_id=ThemeId.DARK,
        title="Dark",
        description="Slate palette designed for dim environments.",
        palette=_DARK_PALETTE,
        metadata={"appearance": "dark"},
    )


def build_high_contrast_theme() -> Theme:
    return Theme(
        theme_id=ThemeId.HIGH_CONTRAST,
        title="High Contrast",
        description="Maximum contrast palette for accessibility routes.",
        palette=_HIGH_CONTRAST_PALETTE,
        metadata={"appearance": "dark"},
    )


class ThemeManager:
    """Read-only registry resolving theme identifiers to palettes.

    Every :class:`ThemeId` must have a palette, so any identifier the engine
    holds can always be rendered.
    """

    def __init__(self, themes: Iterable[Theme] | None = None) -> None:
        registered: Dict[ThemeId, Theme] = {}
        for theme in themes if themes is not None else _builtin_themes():
            registered[theme.theme_id] = theme
        missing = [member.value for member in ThemeId if member not in registered]
        if missing:
            raise ValueError(f"No palette registered for: {', '.join(missing)}")
        self._themes: Mapping[ThemeId, Theme] = registered

    def available(self) -> List[Theme]:
        return [self._themes[member] for member in ThemeId]

    def available_names(self) -> List[str]:
        return [theme.name for theme in self.available()]

    def resolve(self, theme: Theme | ThemeId | str) -> Theme:
        if isinstance(theme, Theme):
            return theme
        theme_id = ThemeId.coerce(theme)
        if theme_id is None:
            raise InvalidThemeError(message=f"Unknown theme {theme!r}", value=theme)
        return self._themes[theme_id]

    def __contains__(self, theme: object) -> bool:
        return ThemeId.coerce(theme) is not None


_BUILTIN_THEMES: tuple[Theme, ...] | None = None


def _builtin_themes() -> tuple[Theme, ...]:
    global _BUILTIN_THEMES
    if _BUILTIN_THEMES is None:
        _BUILTIN_THEMES = (build_light_theme(), build_dark_theme(), build_high_contrast_theme())
    return _BUILTIN_THEMES


theme_manager = ThemeManager()


def load_theme(theme: Theme | ThemeId | str) -> Theme:
    return theme_manager.resolve(theme)


def available_themes() -> List[str]:
    return theme_manager.available_names()


__all__ = [
    "ThemeManager",
    "available_themes",
    "build_dark_theme",
    "build_high_contrast_theme",
    "build_light_theme",
    "load_theme",
    "theme_manager",
]
