"""Route-specific theme overrides layered over the base preference."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from .errors import MalformedValueError
from .theme.models import ThemeId

LOGGER = logging.getLogger(__name__)

DEFAULT_ROUTE = "/"
DEFAULT_ROUTE_OVERRIDES: Mapping[str, ThemeId] = MappingProxyType(
    {
        "/trailers": ThemeId.DARK,
        "/docs": ThemeId.LIGHT,
        "/accessibility": ThemeId.HIGH_CONTRAST,
    }
)


def build_override_table(overrides: Mapping[str, ThemeId | str]) -> Mapping[str, ThemeId]:
    """Validate a route table; unknown theme ids are a configuration error."""

    table: dict[str, ThemeId] = {}
    for route, theme in overrides.items():
        table[str(route)] = ThemeId.parse(theme, source=f"route override {route!r}")
    return MappingProxyType(table)


def effective_theme(
    route: str | None,
    base_theme: ThemeId,
    overrides: Mapping[str, ThemeId] = DEFAULT_ROUTE_OVERRIDES,
) -> ThemeId:
    """Return the override for ``route`` if one exists, else ``base_theme``."""

    if route is not None:
        override = overrides.get(route)
        if override is not None:
            return override
    return base_theme


class RouteOverrideLayer:
    """Tracks the current route and shadows the base theme where required.

    Navigation never reads or writes persisted preferences.
    """

    def __init__(
        self,
        overrides: Mapping[str, ThemeId | str] | None = None,
        *,
        initial_route: str = DEFAULT_ROUTE,
    ) -> None:
        try:
            self._overrides = (
                build_override_table(overrides) if overrides is not None else DEFAULT_ROUTE_OVERRIDES
            )
        except MalformedValueError:
            LOGGER.error("Rejected route override table: %r", dict(overrides or {}))
            raise
        self._route = initial_route

    @property
    def current_route(self) -> str:
        return self._route

    @property
    def overrides(self) -> Mapping[str, ThemeId]:
        return self._overrides

    def navigate_to(self, route: str) -> str:
        """Set the current route and return the previous one."""

        previous = self._route
        self._route = str(route)
        return previous

    def override_for(self, route: str | None = None) -> ThemeId | None:
        return self._overrides.get(self._route if route is None else route)

    def effective_theme(self, base_theme: ThemeId, route: str | None = None) -> ThemeId:
        return effective_theme(self._route if route is None else route, base_theme, self._overrides)


__all__ = [
    "DEFAULT_ROUTE",
    "DEFAULT_ROUTE_OVERRIDES",
    "RouteOverrideLayer",
    "build_override_table",
    "effective_theme",
]
