"""Logging setup for the themesync CLI and for applications embedding the engine.

Everything goes to a rotating ``themesync.log`` file. The optional console
handler writes to stderr (stdout carries command output) and only lets through
``themesync.*`` records plus warnings from third-party loggers.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from ..services.settings import EngineSettings

__all__ = [
    "LOG_FORMAT",
    "get_log_path",
    "parse_level",
    "setup_logging",
    "setup_logging_from_settings",
]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DEFAULT_LOG_DIR = Path.home() / ".themesync" / "logs"
_LOG_FILENAME = "themesync.log"
_PACKAGE_LOGGER = "themesync"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync", "PySide6")
_CONFIGURED = False
_LOG_PATH: Path | None = None


class _EngineConsoleFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == _PACKAGE_LOGGER or record.name.startswith(_PACKAGE_LOGGER + "."):
            return True
        return record.levelno >= logging.WARNING


def parse_level(value: int | str) -> int:
    """Return the numeric level for ``value`` (``"debug"``, ``"WARNING"``, ``10`` ...).

    Raises:
        ValueError: ``value`` names no standard logging level.
    """

    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level {value!r}")
    return level


def setup_logging(
    level: int | str = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install the file and console handlers on the root logger.

    Repeated calls return the existing log path unless ``force`` is set.
    ``log_dir`` wins over ``THEMESYNC_LOG_DIR``, which wins over
    ``~/.themesync/logs``.
    """

    global _CONFIGURED, _LOG_PATH
    if _CONFIGURED and not force and _LOG_PATH is not None:
        return _LOG_PATH

    numeric_level = parse_level(level)
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILENAME

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [file_handler]

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(_EngineConsoleFilter())
        handlers.append(console_handler)

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _tune_external_loggers(numeric_level)

    _CONFIGURED = True
    _LOG_PATH = log_path
    return log_path


def setup_logging_from_settings(
    settings: "EngineSettings",
    *,
    debug: bool = False,
    console: bool = True,
    force: bool = False,
) -> Path:
    """Configure logging from ``log_level``, ``log_dir`` and ``debug_logging``."""

    level = logging.DEBUG if debug or settings.debug_logging else parse_level(settings.log_level)
    return setup_logging(level, log_dir=settings.log_dir or None, console=console, force=force)


def get_log_path() -> Path | None:
    return _LOG_PATH


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("THEMESYNC_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()


def _tune_external_loggers(root_level: int) -> None:
    quiet_level = logging.WARNING if root_level < logging.WARNING else root_level
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
