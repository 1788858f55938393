"""Server-injected theme marker read from the root element's class list."""

from __future__ import annotations

import re

from .base import PreferenceAdapter

MARKER_PREFIX = "theme-"
_MARKER_RE = re.compile(r"(?:^|\s)theme-(\w+)")


def parse_marker(class_attribute: str | None) -> str | None:
    """Return the token of the first ``theme-<id>`` class, if any."""

    if not class_attribute:
        return None
    match = _MARKER_RE.search(class_attribute)
    return match.group(1) if match else None


class ServerMarker(PreferenceAdapter):
    """Read-only adapter over the server-rendered ``class`` attribute.

    The marker reflects what the server already painted, so it is read once
    at boot and never written by the engine.
    """

    name = "server_marker"
    writable = False

    def __init__(self, class_attribute: str | None = None) -> None:
        self._class_attribute = class_attribute or ""

    @property
    def class_attribute(self) -> str:
        return self._class_attribute

    def read_theme(self) -> str | None:
        return parse_marker(self._class_attribute)


__all__ = ["MARKER_PREFIX", "ServerMarker", "parse_marker"]
