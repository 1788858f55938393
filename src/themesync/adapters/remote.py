"""Per-user theme storage reached through asynchronous calls."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict

from ..errors import SourceUnavailableError
from ..theme.models import ThemeId
from .local_store import LocalDeviceStore

LOGGER = logging.getLogger(__name__)


class RemoteUserStore(ABC):
    """Abstract async key/value service mapping a user identity to a theme.

    ``get`` returns the raw stored token (validated by the caller) or
    ``None``. Concurrent ``set`` calls for one identity are last-write-wins.
    """

    name: str = "remote"

    @abstractmethod
    async def get(self, identity: str) -> str | None:
        """Return the stored theme token for ``identity``."""

    @abstractmethod
    async def set(self, identity: str, theme: ThemeId) -> None:
        """Store ``theme`` for ``identity``."""


class InMemoryRemoteUserStore(RemoteUserStore):
    """Dictionary-backed store with optional latency and an outage switch."""

    name = "remote"

    def __init__(
        self,
        initial: Dict[str, str] | None = None,
        *,
        latency: float = 0.0,
        available: bool = True,
    ) -> None:
        self._themes: Dict[str, str] = dict(initial or {})
        self._latency = max(0.0, latency)
        self.available = available
        self.calls: list[tuple[str, str, str | None]] = []

    @property
    def themes(self) -> Dict[str, str]:
        return dict(self._themes)

    async def _round_trip(self) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)
        if not self.available:
            raise SourceUnavailableError(message="Remote user store is unreachable", source=self.name)

    async def get(self, identity: str) -> str | None:
        self.calls.append(("get", identity, None))
        await self._round_trip()
        return self._themes.get(identity)

    async def set(self, identity: str, theme: ThemeId) -> None:
        value = ThemeId(theme).value
        self.calls.append(("set", identity, value))
        await self._round_trip()
        self._themes[identity] = value


class LocalRemoteUserStore(RemoteUserStore):
    """Simulates the remote service inside local storage under ``userThemesDB``."""

    name = "remote"

    def __init__(self, local_store: LocalDeviceStore) -> None:
        self._local = local_store

    async def get(self, identity: str) -> str | None:
        return self._local.read_user_themes().get(identity)

    async def set(self, identity: str, theme: ThemeId) -> None:
        themes = self._local.read_user_themes()
        themes[identity] = ThemeId(theme).value
        self._local.write_user_themes(themes)
        LOGGER.debug("Stored theme %s for identity %s in %s", themes[identity], identity, self._local.name)


__all__ = ["InMemoryRemoteUserStore", "LocalRemoteUserStore", "RemoteUserStore"]
