"""Push-based wrappers around the OS color-scheme and motion preferences."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, List

from .theme.models import ThemeId

LOGGER = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class Subscription:
    """Handle returned by :meth:`PreferenceSignal.subscribe`."""

    __slots__ = ("_signal", "_listener", "_active")

    def __init__(self, signal: "PreferenceSignal", listener: Listener) -> None:
        self._signal = signal
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        if self._active:
            self._active = False
            self._signal._detach(self._listener)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class PreferenceSignal:
    """A boolean platform signal that notifies subscribers when it flips.

    The platform integration calls :meth:`update`; listeners only hear about
    actual changes, in subscription order.
    """

    def __init__(self, name: str, initial: bool = False) -> None:
        self._name = name
        self._value = bool(initial)
        self._listeners: List[Listener] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> bool:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _detach(self, listener: Listener) -> None:
        for i, candidate in enumerate(self._listeners):
            if candidate is listener:
                del self._listeners[i]
                return

    def update(self, value: bool) -> bool:
        """Record a new platform value; return True if listeners were notified."""

        value = bool(value)
        if value == self._value:
            return False
        self._value = value
        LOGGER.debug("System preference %s changed to %s", self._name, value)
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                LOGGER.exception("Listener for %s raised", self._name)
        return True

    async def changes(self) -> AsyncIterator[bool]:
        """Yield each new value for as long as the caller keeps iterating.

        The subscription is released when the generator is closed.
        """

        queue: asyncio.Queue[bool] = asyncio.Queue()
        subscription = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            subscription.close()


class SystemPreferenceObserver:
    """The two independent system signals the engine depends on."""

    def __init__(self, *, prefers_dark: bool = False, prefers_reduced_motion: bool = False) -> None:
        self.dark = PreferenceSignal("prefers-color-scheme: dark", prefers_dark)
        self.reduced_motion = PreferenceSignal("prefers-reduced-motion: reduce", prefers_reduced_motion)

    @property
    def prefers_dark(self) -> bool:
        return self.dark.value

    @property
    def prefers_reduced_motion(self) -> bool:
        return self.reduced_motion.value

    def system_theme(self) -> ThemeId:
        """Theme auto mode follows; never ``highContrast``."""

        return ThemeId.DARK if self.dark.value else ThemeId.LIGHT


__all__ = ["PreferenceSignal", "Subscription", "SystemPreferenceObserver"]
