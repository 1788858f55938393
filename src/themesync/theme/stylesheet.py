"""CSS custom-property contract published for the presentation layer."""

from __future__ import annotations

import html
import logging
import secrets
from typing import Dict, Mapping

from .manager import load_theme
from .models import Theme, ThemeId

LOGGER = logging.getLogger(__name__)

CSS_VARIABLE_PREFIX = "--color-"
TRANSITION_VARIABLE = "--transition-duration"
DEFAULT_ELEMENT_ID = "theme-vars"


def generate_nonce() -> str:
    """Return a 128-bit random hex token for content-security-policy tags."""

    return secrets.token_hex(16)


def css_variables(theme: Theme | ThemeId | str) -> Dict[str, str]:
    """Map ``theme`` to a flat ``--color-<role>`` dictionary in palette order."""

    resolved = load_theme(theme)
    return {f"{CSS_VARIABLE_PREFIX}{role}": value for role, value in resolved.palette.items()}


def render_root_block(variables: Mapping[str, str], *, indent: str = "    ") -> str:
    lines = [f"{indent}{name}: {value};" for name, value in variables.items()]
    return ":root {\n" + "\n".join(lines) + "\n}"


class ThemeStyleSheet:
    """Single stylesheet element whose text is replaced on every update.

    The nonce is fixed for the lifetime of the object, which corresponds to
    one client session.
    """

    def __init__(self, *, nonce: str | None = None, element_id: str = DEFAULT_ELEMENT_ID) -> None:
        self._nonce = nonce or generate_nonce()
        self._element_id = element_id
        self._text = ""
        self._theme_id: ThemeId | None = None
        self._variables: Dict[str, str] = {}

    @property
    def nonce(self) -> str:
        return self._nonce

    @property
    def element_id(self) -> str:
        return self._element_id

    @property
    def text(self) -> str:
        return self._text

    @property
    def theme_id(self) -> ThemeId | None:
        return self._theme_id

    @property
    def variables(self) -> Dict[str, str]:
        return dict(self._variables)

    def update(self, theme: Theme | ThemeId | str, *, transition_ms: int | None = None) -> str:
        resolved = load_theme(theme)
        variables = css_variables(resolved)
        if transition_ms is not None:
            variables[TRANSITION_VARIABLE] = f"{max(0, int(transition_ms))}ms"
        self._variables = variables
        self._theme_id = resolved.theme_id
        self._text = render_root_block(variables)
        LOGGER.debug("Stylesheet %s now renders theme %s", self._element_id, resolved.name)
        return self._text

    def render(self) -> str:
        """Return the full ``<style>`` element markup."""

        return (
            f'<style id="{html.escape(self._element_id)}" nonce="{html.escape(self._nonce)}">'
            f"{self._text}</style>"
        )


__all__ = [
    "CSS_VARIABLE_PREFIX",
    "DEFAULT_ELEMENT_ID",
    "TRANSITION_VARIABLE",
    "ThemeStyleSheet",
    "css_variables",
    "generate_nonce",
    "render_root_block",
]
