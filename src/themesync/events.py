"""Event bus and the events published by the theme engine.

Presentation code subscribes here instead of polling engine state. Every
event is published after the state change it describes has been applied.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, Generic, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all engine events."""

    pass


# =============================================================================
# Preference events
# =============================================================================


@dataclass(slots=True)
class ThemeResolved(Event):
    """Emitted once :meth:`ThemeEngine.initialize` has settled on a preference.

    Attributes:
        base_theme: The resolved base theme identifier.
        auto_mode: Whether the preference follows the system color scheme.
        source: Name of the precedence tier that answered.
    """

    base_theme: str
    auto_mode: bool
    source: str


@dataclass(slots=True)
class BaseThemeChanged(Event):
    """Emitted when the durable base theme changes.

    Attributes:
        previous: The former base theme identifier.
        current: The new base theme identifier.
        reason: What triggered the change (``manual``, ``system``, ``import``...).
    """

    previous: str
    current: str
    reason: str


@dataclass(slots=True)
class AutoModeChanged(Event):
    """Emitted when automatic (system-following) mode is toggled."""

    enabled: bool


@dataclass(slots=True)
class RouteChanged(Event):
    """Emitted when the current navigation location changes.

    Attributes:
        previous: The route navigated away from.
        current: The route navigated to.
        override: The theme forced by ``current``, if any.
    """

    previous: str
    current: str
    override: str | None = None


@dataclass(slots=True)
class EffectiveThemeChanged(Event):
    """Emitted when the rendered theme changes."""

    previous: str
    current: str


@dataclass(slots=True)
class IdentityChanged(Event):
    """Emitted on login/logout of the remote-store identity."""

    identity: str | None


# =============================================================================
# Side-effect events
# =============================================================================


@dataclass(slots=True)
class TransitionStateChanged(Event):
    """Emitted on every Idle/Transitioning edge.

    Attributes:
        transitioning: True while visual transitions should animate.
        duration_ms: Duration of the transition window that just started.
    """

    transitioning: bool
    duration_ms: int = 0


@dataclass(slots=True)
class StyleSheetUpdated(Event):
    """Emitted after the theme stylesheet text has been replaced."""

    theme: str
    nonce: str
    text: str


@dataclass(slots=True)
class PersistenceFailed(Event):
    """Emitted when a single adapter write fails.

    Other adapters are unaffected; the failure is only reported.
    """

    source: str
    error: str


@dataclass(slots=True)
class ThemeErrorReported(Event):
    """Emitted when a caller-facing operation is rejected."""

    operation: str
    error_code: str
    message: str


_QUIET_EVENT_TYPES: set[type] = {TransitionStateChanged}


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus.

    Handlers that are bound methods are held through weak references so that
    subscribers do not need to unsubscribe before being garbage collected.

    Thread Safety:
        Not thread-safe; use from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``.

        Subscribing the same handler twice results in two invocations.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Invoke every handler for ``event`` in registration order.

        A handler that raises is logged and the remaining handlers still run.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        is_quiet = event_type in _QUIET_EVENT_TYPES

        if not handlers:
            if not is_quiet:
                logger.debug("No handlers for event type %s", event_type.__name__)
            return

        if not is_quiet:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead_indices: list[int] = []
        # Copy so handlers may (un)subscribe while we iterate.
        for i, handler_ref in enumerate(list(handlers)):
            handler = handler_ref.resolve()
            if handler is None:
                dead_indices.append(i)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for i in reversed(dead_indices):
            if i < len(handlers) and handlers[i].resolve() is None:
                handlers.pop(i)

    def clear(self) -> None:
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference otherwise."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: Any, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref
        return self._ref()

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        cls_name = type(handler.__self__).__name__
        return f"{cls_name}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "ThemeResolved",
    "BaseThemeChanged",
    "AutoModeChanged",
    "RouteChanged",
    "EffectiveThemeChanged",
    "IdentityChanged",
    "TransitionStateChanged",
    "StyleSheetUpdated",
    "PersistenceFailed",
    "ThemeErrorReported",
]
