"""Theme resolution engine.

:class:`ThemeEngine` owns the single :class:`ThemeState` and is the only
place it is mutated. Every mutating call follows the same sequence:

1. validate input (rejecting unknown themes before anything changes),
2. apply the new state synchronously,
3. publish change events,
4. run the side effects (persistence, stylesheet, transition), each
   isolated so that one failing does not prevent the others.

Queries such as :attr:`ThemeEngine.effective_theme` therefore reflect a
mutation as soon as the call returns, whether or not remote writes have
completed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, NamedTuple

from .adapters.base import TRUE_TOKEN, PreferenceAdapter
from .adapters.cookies import CookieStore
from .adapters.local_store import LocalDeviceStore
from .adapters.remote import LocalRemoteUserStore, RemoteUserStore
from .adapters.server_marker import ServerMarker
from .errors import (
    InvalidSnapshotError,
    InvalidThemeError,
    MalformedValueError,
    SourceUnavailableError,
    ThemeError,
)
from .events import (
    AutoModeChanged,
    BaseThemeChanged,
    EffectiveThemeChanged,
    EventBus,
    IdentityChanged,
    RouteChanged,
    StyleSheetUpdated,
    ThemeErrorReported,
    ThemeResolved,
)
from .routes import RouteOverrideLayer
from .services.persistence import PersistenceSynchronizer, PersistReport
from .services.settings import EngineSettings
from .services.snapshot import ThemeSnapshot, parse_snapshot, read_snapshot
from .system import Subscription, SystemPreferenceObserver
from .theme.models import ThemeId
from .theme.stylesheet import ThemeStyleSheet, css_variables
from .transition import TransitionCoordinator

LOGGER = logging.getLogger(__name__)

SOURCE_SERVER_MARKER = "server_marker"
SOURCE_REMOTE = "remote"
SOURCE_COOKIES = "cookies"
SOURCE_LOCAL = "local_storage"
SOURCE_DEFAULT = "default"
SOURCE_SYSTEM = "system"


@dataclass(slots=True)
class ThemeState:
    """The user's durable preference plus the remote-store identity."""

    base_theme: ThemeId = ThemeId.LIGHT
    auto_mode: bool = False
    identity: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedPreference:
    """Result of :meth:`ThemeEngine.initialize`."""

    base_theme: ThemeId
    auto_mode: bool
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {"baseTheme": self.base_theme.value, "autoMode": self.auto_mode, "source": self.source}


class _Observed(NamedTuple):
    base_theme: ThemeId
    auto_mode: bool
    effective_theme: ThemeId


class ThemeEngine:
    """Resolves, mutates and propagates the theme preference."""

    def __init__(
        self,
        *,
        settings: EngineSettings | None = None,
        server_marker: ServerMarker | None = None,
        cookies: CookieStore | None = None,
        local_store: LocalDeviceStore | None = None,
        remote_store: RemoteUserStore | None = None,
        system: SystemPreferenceObserver | None = None,
        routes: RouteOverrideLayer | None = None,
        synchronizer: PersistenceSynchronizer | None = None,
        transitions: TransitionCoordinator | None = None,
        stylesheet: ThemeStyleSheet | None = None,
        event_bus: EventBus[Any] | None = None,
    ) -> None:
        self._settings = settings or EngineSettings()
        self._bus: EventBus[Any] = event_bus if event_bus is not None else EventBus()
        self._server_marker = server_marker or ServerMarker()
        self._cookies = cookies or CookieStore(
            max_age_days=self._settings.cookie_max_age_days,
            path=self._settings.cookie_path,
            same_site=self._settings.cookie_same_site,
        )
        self._local = local_store if local_store is not None else LocalDeviceStore()
        self._remote = remote_store if remote_store is not None else LocalRemoteUserStore(self._local)
        self._system = system or SystemPreferenceObserver()
        self._routes = routes or RouteOverrideLayer(self._settings.route_overrides)
        self._synchronizer = synchronizer or PersistenceSynchronizer(
            [self._cookies, self._local],
            remote_store=self._remote,
            event_bus=self._bus,
            remote_timeout=self._settings.remote_timeout,
        )
        self._transitions = transitions or TransitionCoordinator(
            duration_ms=self._settings.transition_duration_ms,
            reduced_motion=lambda: self._system.prefers_reduced_motion,
            event_bus=self._bus,
        )
        self._stylesheet = stylesheet or ThemeStyleSheet()
        self._state = ThemeState(base_theme=self._settings.default_theme_id)
        self._initialized = False
        self._last_persist: PersistReport | None = None
        self._subscriptions: list[Subscription] = [
            self._system.dark.subscribe(self._on_system_dark_changed),
            self._system.reduced_motion.subscribe(self._on_reduced_motion_changed),
        ]

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def event_bus(self) -> EventBus[Any]:
        return self._bus

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def cookies(self) -> CookieStore:
        return self._cookies

    @property
    def local_store(self) -> LocalDeviceStore:
        return self._local

    @property
    def system(self) -> SystemPreferenceObserver:
        return self._system

    @property
    def stylesheet(self) -> ThemeStyleSheet:
        return self._stylesheet

    @property
    def state(self) -> ThemeState:
        """A copy of the owned state; mutate only through engine methods."""
        return replace(self._state)

    @property
    def base_theme(self) -> ThemeId:
        return self._state.base_theme

    @property
    def auto_mode(self) -> bool:
        return self._state.auto_mode

    @property
    def identity(self) -> str | None:
        return self._state.identity

    @property
    def current_route(self) -> str:
        return self._routes.current_route

    @property
    def effective_theme(self) -> ThemeId:
        return self._routes.effective_theme(self._state.base_theme)

    @property
    def is_transitioning(self) -> bool:
        return self._transitions.is_transitioning

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def last_persist(self) -> PersistReport | None:
        return self._last_persist

    def css_variables(self) -> Dict[str, str]:
        return css_variables(self.effective_theme)

    def describe(self) -> Dict[str, Any]:
        return {
            "baseTheme": self._state.base_theme.value,
            "autoMode": self._state.auto_mode,
            "effectiveTheme": self.effective_theme.value,
            "route": self.current_route,
            "identity": self._state.identity,
            "transitioning": self.is_transitioning,
        }

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    async def initialize(self) -> ResolvedPreference:
        """Resolve the base theme and auto mode from the backing stores.

        The first tier with a valid answer wins: server marker, remote store
        (for a remembered identity), cookie, local storage, then the default.
        """

        identity = self._read_identity()
        base_theme, source = await self._resolve_base_theme(identity)
        # The server marker masks the per-user remote theme but never replaces it.
        from_marker = source == SOURCE_SERVER_MARKER
        auto_mode = self._read_auto_mode()
        if auto_mode:
            base_theme = self._system.system_theme()
            source = SOURCE_SYSTEM

        before = self._observe()
        self._state.identity = identity
        self._state.base_theme = base_theme
        self._state.auto_mode = auto_mode
        self._initialized = True
        resolved = ResolvedPreference(base_theme=base_theme, auto_mode=auto_mode, source=source)
        LOGGER.info(
            "Resolved theme %s (auto=%s) from %s", base_theme.value, auto_mode, source
        )
        self._bus.publish(ThemeResolved(base_theme=base_theme.value, auto_mode=auto_mode, source=source))
        after = self._observe()
        self._publish_changes(before, after, reason="initialize")
        # Write the resolved preference back so every store converges.
        self._side_effect("persistence", lambda: self._persist(remote=not from_marker))
        self._side_effect("stylesheet", self._publish_stylesheet)
        if before != after:
            self._side_effect("transition", self._transitions.begin)
        return resolved

    async def _resolve_base_theme(self, identity: str | None) -> tuple[ThemeId, str]:
        marker = self._read_adapter_theme(self._server_marker)
        if marker is not None:
            return marker, SOURCE_SERVER_MARKER
        if identity:
            remote = await self._read_remote_theme(identity)
            if remote is not None:
                return remote, SOURCE_REMOTE
        cookie = self._read_adapter_theme(self._cookies)
        if cookie is not None:
            return cookie, SOURCE_COOKIES
        local = self._read_adapter_theme(self._local)
        if local is not None:
            return local, SOURCE_LOCAL
        return self._settings.default_theme_id, SOURCE_DEFAULT

    def _read_adapter_theme(self, adapter: PreferenceAdapter) -> ThemeId | None:
        return self._validated(adapter.name, lambda: adapter.read_theme())

    def _validated(self, source: str, reader: Callable[[], Any]) -> ThemeId | None:
        try:
            raw = reader()
        except Exception as exc:
            self._absorb_unavailable(source, exc)
            return None
        if raw is None:
            return None
        theme_id = ThemeId.coerce(raw)
        if theme_id is None:
            self._report_error(
                "initialize",
                MalformedValueError(message=f"Ignoring malformed theme {raw!r}", source=source, value=raw),
            )
        return theme_id

    async def _read_remote_theme(self, identity: str) -> ThemeId | None:
        try:
            raw = await asyncio.wait_for(self._remote.get(identity), timeout=self._settings.remote_timeout)
        except asyncio.TimeoutError:
            self._absorb_unavailable(self._remote.name, f"lookup for {identity} timed out")
            return None
        except Exception as exc:
            self._absorb_unavailable(self._remote.name, exc)
            return None
        return self._validated(self._remote.name, lambda: raw)

    def _read_identity(self) -> str | None:
        try:
            return self._local.read_identity()
        except Exception as exc:
            LOGGER.warning("Unable to read remembered identity: %s", exc)
            return None

    def _read_auto_mode(self) -> bool:
        try:
            token = self._cookies.read_auto_mode()
        except Exception as exc:
            self._absorb_unavailable(self._cookies.name, exc)
            return False
        return (token or "").strip().lower() == TRUE_TOKEN

    def _absorb_unavailable(self, source: str, reason: object) -> None:
        if isinstance(reason, ThemeError):
            message = reason.message
        else:
            message = str(reason) or type(reason).__name__
        self._report_error("initialize", SourceUnavailableError(message=message, source=source))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def change_theme(self, theme_id: ThemeId | str) -> None:
        """Select ``theme_id`` manually, leaving automatic mode.

        Raises:
            InvalidThemeError: ``theme_id`` is not a known theme; nothing changes.
        """

        theme = ThemeId.coerce(theme_id)
        if theme is None:
            error = InvalidThemeError(message=f"Unknown theme {theme_id!r}", value=theme_id)
            self._report_error("change_theme", error)
            raise error
        self._apply(base_theme=theme, auto_mode=False, reason="manual")

    def toggle_auto_mode(self) -> None:
        self.set_auto_mode(not self._state.auto_mode)

    def set_auto_mode(self, enabled: bool) -> None:
        """Enable or disable system-following mode.

        Enabling adopts the current system theme immediately; disabling keeps
        the last resolved base theme as the manual choice.
        """

        if enabled:
            self._apply(base_theme=self._system.system_theme(), auto_mode=True, reason="auto")
        else:
            self._apply(auto_mode=False, reason="auto")

    def navigate_to(self, route: str) -> None:
        before = self._observe()
        previous = self._routes.navigate_to(route)
        override = self._routes.override_for()
        if previous != self._routes.current_route:
            self._bus.publish(
                RouteChanged(
                    previous=previous,
                    current=self._routes.current_route,
                    override=override.value if override is not None else None,
                )
            )
        after = self._observe()
        if before.effective_theme != after.effective_theme:
            self._publish_changes(before, after, reason="route")
            self._side_effect("stylesheet", self._publish_stylesheet)
            self._side_effect("transition", self._transitions.begin)

    def set_identity(self, identity: str | None) -> None:
        """Record login (an identity) or logout (``None``/blank)."""

        normalized = (identity or "").strip() or None
        try:
            self._local.write_identity(normalized)
        except Exception as exc:
            LOGGER.warning("Unable to remember identity in %s: %s", self._local.name, exc)
        if normalized == self._state.identity:
            return
        self._state.identity = normalized
        LOGGER.info("Theme identity %s", "set" if normalized else "cleared")
        self._bus.publish(IdentityChanged(identity=normalized))
        if normalized:
            self._side_effect("persistence", self._persist)

    # ------------------------------------------------------------------
    # Snapshot export / import
    # ------------------------------------------------------------------
    def export_snapshot(self) -> ThemeSnapshot:
        return ThemeSnapshot(base_theme=self._state.base_theme, auto_mode=self._state.auto_mode)

    def import_snapshot(self, data: ThemeSnapshot | Mapping[str, Any] | str | bytes) -> ThemeSnapshot:
        """Apply an exported preference.

        Raises:
            InvalidSnapshotError: the payload is malformed or names an unknown
                theme; nothing changes.
        """

        try:
            snapshot = parse_snapshot(data)
        except InvalidSnapshotError as error:
            self._report_error("import_snapshot", error)
            raise
        self._apply_snapshot(snapshot)
        return snapshot

    def export_to_file(self, destination: str | Path) -> Path:
        path = self.export_snapshot().write(destination)
        LOGGER.info("Exported theme preference to %s", path)
        return path

    def import_from_file(self, source: str | Path) -> ThemeSnapshot:
        try:
            snapshot = read_snapshot(source)
        except InvalidSnapshotError as error:
            self._report_error("import_snapshot", error)
            raise
        self._apply_snapshot(snapshot)
        return snapshot

    def _apply_snapshot(self, snapshot: ThemeSnapshot) -> None:
        if snapshot.auto_mode:
            self._apply(base_theme=self._system.system_theme(), auto_mode=True, reason="import")
        else:
            self._apply(base_theme=snapshot.base_theme, auto_mode=False, reason="import")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def drain(self) -> None:
        """Wait for outstanding remote writes."""

        await self._synchronizer.drain()

    async def aclose(self) -> None:
        await self.drain()
        self._transitions.cancel()
        for subscription in self._subscriptions:
            subscription.close()
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # System preference notifications
    # ------------------------------------------------------------------
    def _on_system_dark_changed(self, prefers_dark: bool) -> None:
        if not self._state.auto_mode:
            LOGGER.debug("System color scheme changed (dark=%s); auto mode off, ignoring", prefers_dark)
            return
        self._apply(base_theme=self._system.system_theme(), reason="system")

    def _on_reduced_motion_changed(self, reduced: bool) -> None:
        LOGGER.debug("Reduced motion preference is now %s", reduced)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _observe(self) -> _Observed:
        return _Observed(self._state.base_theme, self._state.auto_mode, self.effective_theme)

    def _apply(
        self,
        *,
        base_theme: ThemeId | None = None,
        auto_mode: bool | None = None,
        reason: str,
    ) -> bool:
        before = self._observe()
        if base_theme is not None:
            self._state.base_theme = base_theme
        if auto_mode is not None:
            self._state.auto_mode = auto_mode
        after = self._observe()
        if before == after:
            LOGGER.debug("Theme %s request left state unchanged", reason)
            return False
        self._publish_changes(before, after, reason=reason)
        self._side_effect("persistence", self._persist)
        if before.effective_theme != after.effective_theme:
            self._side_effect("stylesheet", self._publish_stylesheet)
        self._side_effect("transition", self._transitions.begin)
        return True

    def _publish_changes(self, before: _Observed, after: _Observed, *, reason: str) -> None:
        if before.auto_mode != after.auto_mode:
            self._bus.publish(AutoModeChanged(enabled=after.auto_mode))
        if before.base_theme != after.base_theme:
            self._bus.publish(
                BaseThemeChanged(
                    previous=before.base_theme.value,
                    current=after.base_theme.value,
                    reason=reason,
                )
            )
        if before.effective_theme != after.effective_theme:
            self._bus.publish(
                EffectiveThemeChanged(
                    previous=before.effective_theme.value,
                    current=after.effective_theme.value,
                )
            )

    def _persist(self, *, remote: bool = True) -> None:
        identity = self._state.identity if remote else None
        self._last_persist = self._synchronizer.persist(self._state.base_theme, self._state.auto_mode, identity)

    def _publish_stylesheet(self) -> None:
        theme = self.effective_theme
        text = self._stylesheet.update(theme, transition_ms=self._transitions.duration_ms())
        self._bus.publish(StyleSheetUpdated(theme=theme.value, nonce=self._stylesheet.nonce, text=text))

    def _side_effect(self, name: str, effect: Callable[[], Any]) -> None:
        try:
            effect()
        except Exception:
            LOGGER.exception("Theme side effect %s failed", name)

    def _report_error(self, operation: str, error: ThemeError) -> None:
        if not error.caller_facing:
            LOGGER.warning("%s treated %s as absent: %s", operation, getattr(error, "source", None), error)
            return
        LOGGER.warning("Rejected %s: %s", operation, error)
        self._bus.publish(
            ThemeErrorReported(operation=operation, error_code=error.error_code, message=error.message)
        )


__all__ = ["ResolvedPreference", "ThemeEngine", "ThemeState"]
