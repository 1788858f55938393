"""Write-through of the preference to every writable store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

from ..adapters.base import PreferenceAdapter
from ..adapters.remote import RemoteUserStore
from ..events import EventBus, PersistenceFailed
from ..theme.models import ThemeId

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class PersistReport:
    """Outcome of one :meth:`PersistenceSynchronizer.persist` call.

    ``remote_task`` is the pending remote write, if one was started; its
    outcome is logged rather than reported here.
    """

    base_theme: ThemeId
    auto_mode: bool
    identity: str | None = None
    written: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    remote_task: asyncio.Task[Any] | None = None

    @property
    def ok(self) -> bool:
        return not self.failed


class PersistenceSynchronizer:
    """Fans a preference out to the cookie, local and remote stores.

    Writes are independent: one store failing is logged and published as a
    :class:`PersistenceFailed` event, and never undoes writes that already
    succeeded elsewhere. The next session's resolution heals any divergence.
    """

    def __init__(
        self,
        adapters: Iterable[PreferenceAdapter],
        *,
        remote_store: RemoteUserStore | None = None,
        event_bus: EventBus[Any] | None = None,
        remote_timeout: float = 5.0,
    ) -> None:
        self._adapters = [adapter for adapter in adapters if adapter.writable]
        self._remote = remote_store
        self._bus = event_bus
        self._remote_timeout = remote_timeout
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def adapters(self) -> list[PreferenceAdapter]:
        return list(self._adapters)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def persist(self, base_theme: ThemeId, auto_mode: bool, identity: str | None = None) -> PersistReport:
        report = PersistReport(base_theme=base_theme, auto_mode=auto_mode, identity=identity)
        for adapter in self._adapters:
            self._write(report, adapter.name, lambda a=adapter: a.write_theme(base_theme))
            self._write(report, adapter.name, lambda a=adapter: a.write_auto_mode(auto_mode))
            if adapter.name not in report.failed:
                report.written.append(adapter.name)
        if identity and self._remote is not None:
            report.remote_task = self._spawn(
                self._write_remote(identity, base_theme),
                name=f"themesync-remote-set-{identity}",
            )
        LOGGER.debug(
            "Persisted theme=%s auto=%s identity=%s written=%s failed=%s",
            base_theme.value,
            auto_mode,
            identity,
            report.written,
            sorted(report.failed),
        )
        return report

    async def drain(self) -> None:
        """Wait for every outstanding remote write to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _write(self, report: PersistReport, source: str, operation: Callable[[], None]) -> None:
        if source in report.failed:
            return
        try:
            operation()
        except Exception as exc:
            report.failed[source] = str(exc)
            self._report_failure(source, exc)

    async def _write_remote(self, identity: str, theme: ThemeId) -> None:
        assert self._remote is not None
        source = self._remote.name
        try:
            await asyncio.wait_for(self._remote.set(identity, theme), timeout=self._remote_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._report_failure(source, exc)
            return
        LOGGER.debug("Remote store saved theme %s for %s", theme.value, identity)

    def _report_failure(self, source: str, exc: BaseException) -> None:
        message = str(exc) or type(exc).__name__
        LOGGER.warning("Failed to persist theme preference to %s: %s", source, message)
        if self._bus is not None:
            self._bus.publish(PersistenceFailed(source=source, error=message))

    def _spawn(self, coro: Awaitable[None], *, name: str) -> asyncio.Task[Any] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; running %s inline", name)
            asyncio.run(_as_coroutine(coro))
            return None
        task = loop.create_task(_as_coroutine(coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


async def _as_coroutine(awaitable: Awaitable[None]) -> None:
    await awaitable


__all__ = ["PersistReport", "PersistenceSynchronizer"]
