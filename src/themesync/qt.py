"""Optional PySide6/qasync integration.

Neither library is imported until a function here needs it, so the engine
and CLI run without the ``qt`` extra installed.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Any, cast

from .system import SystemPreferenceObserver

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qt_runtime`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def is_dark_scheme(scheme: Any) -> bool:
    """Return True for ``Qt.ColorScheme.Dark`` (or anything named like it)."""

    name = getattr(scheme, "name", None) or str(scheme)
    return name.rsplit(".", 1)[-1].lower() == "dark"


class QtColorSchemeBridge:
    """Feeds ``QStyleHints.colorScheme`` into the observer's dark signal.

    ``style_hints`` is normally ``QGuiApplication.styleHints()``; any object
    with a ``colorScheme()`` method and a ``colorSchemeChanged`` signal works.
    """

    def __init__(self, observer: SystemPreferenceObserver, style_hints: Any | None = None) -> None:
        self._observer = observer
        self._hints = style_hints if style_hints is not None else _application_style_hints()
        self._connected = False
        self._observer.dark.update(is_dark_scheme(self._hints.colorScheme()))
        self._hints.colorSchemeChanged.connect(self._on_color_scheme_changed)
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    def close(self) -> None:
        if not self._connected:
            return
        self._connected = False
        try:
            self._hints.colorSchemeChanged.disconnect(self._on_color_scheme_changed)
        except (RuntimeError, TypeError) as exc:
            LOGGER.debug("colorSchemeChanged already disconnected: %s", exc)

    def _on_color_scheme_changed(self, scheme: Any) -> None:
        self._observer.dark.update(is_dark_scheme(scheme))


def create_qt_runtime(app_name: str = "themesync") -> QtRuntime:
    """Create a QApplication driven by a qasync event loop."""

    try:  # Local import to avoid a mandatory PySide6 dependency.
        from PySide6.QtWidgets import QApplication
    except ImportError as exc:  # pragma: no cover - depends on desktop stack
        raise RuntimeError("PySide6 must be installed: pip install 'themesync[qt]'") from exc

    try:
        from qasync import QEventLoop
    except ImportError as exc:  # pragma: no cover - depends on env setup
        raise RuntimeError("qasync is required to run the async Qt event loop.") from exc

    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName(app_name)
    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    try:
        app.aboutToQuit.connect(loop.stop)  # type: ignore[attr-defined]
    except AttributeError:  # pragma: no cover - in case of mock QApplication
        pass
    return QtRuntime(app=app, loop=loop)


def _application_style_hints() -> Any:
    try:
        from PySide6.QtGui import QGuiApplication
    except ImportError as exc:  # pragma: no cover - depends on desktop stack
        raise RuntimeError("PySide6 must be installed: pip install 'themesync[qt]'") from exc
    app = QGuiApplication.instance()
    if app is None:
        raise RuntimeError("Create a QApplication before bridging the system color scheme.")
    return QGuiApplication.styleHints()


__all__ = ["QtColorSchemeBridge", "QtRuntime", "create_qt_runtime", "is_dark_scheme"]
