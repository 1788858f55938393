"""Command-line bootstrap for the themesync engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .adapters.cookies import CookieJar, CookieStore
from .adapters.local_store import LocalDeviceStore
from .adapters.server_marker import ServerMarker
from .engine import ResolvedPreference, ThemeEngine
from .errors import ThemeError
from .routes import DEFAULT_ROUTE, RouteOverrideLayer
from .services.settings import EngineSettings, SettingsStore
from .services.snapshot import DEFAULT_EXPORT_FILENAME
from .system import SystemPreferenceObserver
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_AUTO_CHOICES = ("on", "off", "toggle")


def configure_logging(
    settings: EngineSettings | None = None,
    *,
    debug: bool = False,
    force: bool = False,
) -> None:
    """Configure structured logging for the CLI from the loaded settings."""

    log_path = logging_utils.setup_logging_from_settings(settings or EngineSettings(), debug=debug, force=force)
    _LOGGER.debug("Logging to %s", log_path)
    _install_qt_message_handler()


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> EngineSettings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except Exception as exc:  # pragma: no cover - defensive path
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = EngineSettings()
    return settings


def build_engine(
    settings: EngineSettings,
    *,
    storage_path: Path | str | None = None,
    marker: str | None = None,
    cookie: str = "",
    system_dark: bool = False,
    reduced_motion: bool = False,
    route: str = DEFAULT_ROUTE,
) -> ThemeEngine:
    """Wire an engine over the on-disk local store and simulated browser state."""

    storage = Path(storage_path or settings.storage_path).expanduser()
    cookies = CookieStore(
        CookieJar(cookie),
        max_age_days=settings.cookie_max_age_days,
        path=settings.cookie_path,
        same_site=settings.cookie_same_site,
    )
    return ThemeEngine(
        settings=settings,
        server_marker=ServerMarker(marker),
        cookies=cookies,
        local_store=LocalDeviceStore(storage),
        system=SystemPreferenceObserver(prefers_dark=system_dark, prefers_reduced_motion=reduced_motion),
        routes=RouteOverrideLayer(settings.route_overrides, initial_route=route),
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `themesync` console script."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    settings_path = args.settings_path or os.environ.get("THEMESYNC_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    debug = args.debug or _env_flag("THEMESYNC_DEBUG", default=False)
    configure_logging(settings, debug=debug)

    if args.command == "dump-settings":
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    try:
        output = asyncio.run(_run_command(args, settings))
    except ThemeError as exc:
        _LOGGER.debug("Command %s rejected: %s", args.command, exc)
        print(f"themesync {args.command}: {exc.message}", file=sys.stderr)
        raise SystemExit(2) from exc
    sys.stdout.write(output)
    if not output.endswith("\n"):
        sys.stdout.write("\n")


async def _run_command(args: argparse.Namespace, settings: EngineSettings) -> str:
    engine = build_engine(
        settings,
        storage_path=args.storage,
        marker=args.marker,
        cookie=args.cookie or "",
        system_dark=args.system == "dark",
        reduced_motion=args.reduced_motion,
        route=args.route or DEFAULT_ROUTE,
    )
    try:
        resolved = await engine.initialize()
        extra = _apply_command(engine, args)
        await engine.drain()
        if args.command == "css":
            return engine.stylesheet.render()
        return json.dumps(_describe(engine, resolved, extra), indent=2)
    finally:
        await engine.aclose()


def _apply_command(engine: ThemeEngine, args: argparse.Namespace) -> Dict[str, Any]:
    command = args.command
    if command == "set":
        engine.change_theme(args.theme)
    elif command == "auto":
        if args.mode == "toggle":
            engine.toggle_auto_mode()
        else:
            engine.set_auto_mode(args.mode == "on")
    elif command == "export":
        path = engine.export_to_file(Path(args.path).expanduser() if args.path else Path.cwd())
        return {"exported": str(path)}
    elif command == "import":
        snapshot = engine.import_from_file(Path(args.path).expanduser())
        return {"imported": snapshot.to_dict()}
    elif command == "login":
        engine.set_identity(args.identity)
    elif command == "logout":
        engine.set_identity(None)
    return {}


def _describe(engine: ThemeEngine, resolved: ResolvedPreference, extra: Mapping[str, Any]) -> Dict[str, Any]:
    payload = engine.describe()
    payload["resolvedFrom"] = resolved.source
    payload["cookies"] = list(engine.cookies.headers.values())
    payload.update(extra)
    return payload


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="themesync",
        description="Resolve, change and persist the UI theme preference.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.themesync/settings.json path.",
    )
    parser.add_argument(
        "--storage",
        metavar="PATH",
        help="Local device storage file (defaults to the storage_path setting).",
    )
    parser.add_argument(
        "--marker",
        metavar="CLASSES",
        help="Root element class attribute injected by the server, e.g. 'theme-dark'.",
    )
    parser.add_argument(
        "--cookie",
        metavar="STR",
        help="Incoming cookie string, e.g. 'theme=dark; autoTheme=false'.",
    )
    parser.add_argument(
        "--system",
        choices=("light", "dark"),
        default="light",
        help="System color scheme preference (default: light).",
    )
    parser.add_argument(
        "--reduced-motion",
        action="store_true",
        help="Simulate the reduced-motion accessibility preference.",
    )
    parser.add_argument("--route", metavar="ROUTE", help="Current route (default: /).")
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True
    commands.add_parser("show", help="Print the resolved theme state.")
    set_parser = commands.add_parser("set", help="Select a theme manually.")
    set_parser.add_argument("theme", help="Theme identifier (light, dark, highContrast).")
    auto_parser = commands.add_parser("auto", help="Enable, disable or toggle auto mode.")
    auto_parser.add_argument("mode", nargs="?", choices=_AUTO_CHOICES, default="toggle")
    export_parser = commands.add_parser("export", help=f"Write {DEFAULT_EXPORT_FILENAME}.")
    export_parser.add_argument("path", nargs="?", help="Destination file or directory.")
    import_parser = commands.add_parser("import", help="Apply a previously exported file.")
    import_parser.add_argument("path", help="Exported theme settings file.")
    commands.add_parser("css", help="Print the CSS variable stylesheet for the effective theme.")
    login_parser = commands.add_parser("login", help="Remember a user identity.")
    login_parser.add_argument("identity")
    commands.add_parser("logout", help="Forget the remembered user identity.")
    commands.add_parser("dump-settings", help="Print the effective settings payload and exit.")
    return parser


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _install_qt_message_handler() -> None:
    """Redirect Qt warnings to the Python logging stack when available."""

    try:
        from PySide6.QtCore import QtMsgType, qInstallMessageHandler
    except ImportError:  # pragma: no cover - PySide6 optional during tests
        return

    level_map = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        del context
        level = level_map.get(mode, logging.INFO)
        logging.getLogger("PySide6").log(level, message)

    qInstallMessageHandler(_handler)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = EngineSettings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(EngineSettings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is dict:
        try:
            payload = json.loads(normalized or "{}")
        except json.JSONDecodeError as exc:
            raise ValueError("Dict overrides must be valid JSON objects") from exc
        if not isinstance(payload, dict):
            raise ValueError("Dict overrides must be valid JSON objects")
        return payload
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: EngineSettings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    log_path = logging_utils.get_log_path()
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
        "log_path": str(log_path) if log_path else None,
    }
    output = {"settings": payload, "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("THEMESYNC_"))


if __name__ == "__main__":  # pragma: no cover
    main()
