"""Theme module consolidating palette data and registry helpers."""

from .models import PALETTE_ROLES, Theme, ThemeId, normalize_color
from .manager import (
    ThemeManager,
    available_themes,
    build_dark_theme,
    build_high_contrast_theme,
    build_light_theme,
    load_theme,
    theme_manager,
)
from .stylesheet import ThemeStyleSheet, css_variables, generate_nonce

__all__ = [
    "PALETTE_ROLES",
    "Theme",
    "ThemeId",
    "ThemeManager",
    "ThemeStyleSheet",
    "available_themes",
    "build_dark_theme",
    "build_high_contrast_theme",
    "build_light_theme",
    "css_variables",
    "generate_nonce",
    "load_theme",
    "normalize_color",
    "theme_manager",
]
