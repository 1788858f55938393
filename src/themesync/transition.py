"""Timed "in transition" flag bracketing visible theme changes."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Protocol

from .events import EventBus, TransitionStateChanged

LOGGER = logging.getLogger(__name__)

DEFAULT_TRANSITION_MS = 500


class TransitionState(str, Enum):
    IDLE = "idle"
    TRANSITIONING = "transitioning"


class TimerHandle(Protocol):
    def cancel(self) -> None:  # pragma: no cover - protocol stub
        ...


class Scheduler(Protocol):
    """Anything able to run ``callback`` after ``delay`` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:  # pragma: no cover
        ...


class _CompletedHandle:
    def cancel(self) -> None:
        return None


class AsyncioScheduler:
    """Schedules on the running event loop.

    Without a running loop there is nothing to wait on, so the callback runs
    immediately.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; completing transition immediately")
            callback()
            return _CompletedHandle()
        return loop.call_later(max(0.0, delay), callback)


class TransitionCoordinator:
    """Idle/Transitioning state machine with restartable timer.

    Each :meth:`begin` supersedes the previous timer: it is cancelled and,
    should it still fire, its generation no longer matches so it is ignored.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler | None = None,
        duration_ms: int = DEFAULT_TRANSITION_MS,
        reduced_motion: Callable[[], bool] | None = None,
        event_bus: EventBus[Any] | None = None,
    ) -> None:
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._nominal_ms = max(0, int(duration_ms))
        self._reduced_motion = reduced_motion or (lambda: False)
        self._bus = event_bus
        self._state = TransitionState.IDLE
        self._generation = 0
        self._handle: TimerHandle | None = None
        self._active_ms = 0

    @property
    def state(self) -> TransitionState:
        return self._state

    @property
    def is_transitioning(self) -> bool:
        return self._state is TransitionState.TRANSITIONING

    @property
    def nominal_duration_ms(self) -> int:
        return self._nominal_ms

    def duration_ms(self) -> int:
        """Duration the next transition would use, honouring reduced motion."""

        return 0 if self._reduced_motion() else self._nominal_ms

    def begin(self) -> int:
        """Enter (or restart) the transitioning state; return its duration."""

        self._generation += 1
        generation = self._generation
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        duration = self.duration_ms()
        self._active_ms = duration
        self._set_state(TransitionState.TRANSITIONING, duration)
        self._handle = self._scheduler.call_later(duration / 1000.0, lambda: self._complete(generation))
        return duration

    def cancel(self) -> None:
        self._generation += 1
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._set_state(TransitionState.IDLE, 0)

    def _complete(self, generation: int) -> None:
        if generation != self._generation:
            LOGGER.debug("Ignoring superseded transition timer (generation %s)", generation)
            return
        self._handle = None
        self._set_state(TransitionState.IDLE, self._active_ms)

    def _set_state(self, state: TransitionState, duration_ms: int) -> None:
        changed = state is not self._state
        self._state = state
        if self._bus is not None and (changed or state is TransitionState.TRANSITIONING):
            self._bus.publish(
                TransitionStateChanged(
                    transitioning=state is TransitionState.TRANSITIONING,
                    duration_ms=duration_ms,
                )
            )


__all__ = [
    "AsyncioScheduler",
    "DEFAULT_TRANSITION_MS",
    "Scheduler",
    "TransitionCoordinator",
    "TransitionState",
]
