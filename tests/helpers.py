"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from themesync.adapters.base import PreferenceAdapter
from themesync.adapters.cookies import CookieJar, CookieStore
from themesync.adapters.local_store import LocalDeviceStore
from themesync.adapters.remote import InMemoryRemoteUserStore, RemoteUserStore
from themesync.adapters.server_marker import ServerMarker
from themesync.engine import ThemeEngine
from themesync.errors import SourceUnavailableError
from themesync.events import (
    AutoModeChanged,
    BaseThemeChanged,
    EffectiveThemeChanged,
    Event,
    EventBus,
    IdentityChanged,
    PersistenceFailed,
    RouteChanged,
    StyleSheetUpdated,
    ThemeErrorReported,
    ThemeResolved,
    TransitionStateChanged,
)
from themesync.routes import RouteOverrideLayer
from themesync.services.settings import EngineSettings
from themesync.system import SystemPreferenceObserver
from themesync.theme.models import ThemeId
from themesync.transition import TransitionCoordinator

ALL_EVENT_TYPES: tuple[type[Event], ...] = (
    ThemeResolved,
    BaseThemeChanged,
    AutoModeChanged,
    RouteChanged,
    EffectiveThemeChanged,
    IdentityChanged,
    TransitionStateChanged,
    StyleSheetUpdated,
    PersistenceFailed,
    ThemeErrorReported,
)


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual scheduler: timers only fire when the test says so."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def fire(self, timer: FakeTimer) -> None:
        timer.callback()

    def fire_all(self) -> None:
        for timer in list(self.timers):
            self.timers.remove(timer)
            if not timer.cancelled:
                timer.callback()


class EventRecorder:
    """Collects every engine event published on ``bus``."""

    def __init__(self, bus: EventBus[Any], *event_types: type[Event]) -> None:
        self.events: list[Event] = []
        for event_type in event_types or ALL_EVENT_TYPES:
            bus.subscribe(event_type, self.events.append)

    def of(self, event_type: type[Event]) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]

    def clear(self) -> None:
        self.events.clear()


class BrokenAdapter(PreferenceAdapter):
    """Writable adapter whose every operation fails."""

    name = "broken"

    def read_theme(self) -> str | None:
        raise SourceUnavailableError(message="broken store", source=self.name)

    def write_theme(self, theme: ThemeId) -> None:
        raise SourceUnavailableError(message="broken store", source=self.name)

    def write_auto_mode(self, enabled: bool) -> None:
        raise SourceUnavailableError(message="broken store", source=self.name)


class RecordingAdapter(PreferenceAdapter):
    name = "recording"

    def __init__(self) -> None:
        self.theme: str | None = None
        self.auto: bool | None = None

    def read_theme(self) -> str | None:
        return self.theme

    def write_theme(self, theme: ThemeId) -> None:
        self.theme = ThemeId(theme).value

    def write_auto_mode(self, enabled: bool) -> None:
        self.auto = enabled


@dataclass
class EngineHarness:
    engine: ThemeEngine
    scheduler: FakeScheduler
    remote: RemoteUserStore
    recorder: EventRecorder
    system: SystemPreferenceObserver = field(init=False)

    def __post_init__(self) -> None:
        self.system = self.engine.system


def make_engine(
    *,
    marker: str | None = None,
    cookie: str = "",
    local: LocalDeviceStore | None = None,
    remote: RemoteUserStore | None = None,
    dark: bool = False,
    reduced_motion: bool = False,
    route: str = "/",
    settings: EngineSettings | None = None,
) -> EngineHarness:
    settings = settings or EngineSettings()
    bus: EventBus[Any] = EventBus()
    recorder = EventRecorder(bus)
    scheduler = FakeScheduler()
    system = SystemPreferenceObserver(prefers_dark=dark, prefers_reduced_motion=reduced_motion)
    remote_store = remote if remote is not None else InMemoryRemoteUserStore()
    transitions = TransitionCoordinator(
        scheduler=scheduler,
        duration_ms=settings.transition_duration_ms,
        reduced_motion=lambda: system.prefers_reduced_motion,
        event_bus=bus,
    )
    engine = ThemeEngine(
        settings=settings,
        server_marker=ServerMarker(marker),
        cookies=CookieStore(CookieJar(cookie)),
        local_store=local if local is not None else LocalDeviceStore(),
        remote_store=remote_store,
        system=system,
        routes=RouteOverrideLayer(settings.route_overrides, initial_route=route),
        transitions=transitions,
        event_bus=bus,
    )
    return EngineHarness(engine=engine, scheduler=scheduler, remote=remote_store, recorder=recorder)
