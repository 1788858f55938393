"""Theme resolution and persistence engine."""

from .engine import ResolvedPreference, ThemeEngine, ThemeState
from .errors import (
    InvalidSnapshotError,
    InvalidThemeError,
    MalformedValueError,
    SourceUnavailableError,
    ThemeError,
)
from .events import EventBus
from .routes import RouteOverrideLayer
from .services.settings import EngineSettings, SettingsStore
from .services.snapshot import ThemeSnapshot
from .system import SystemPreferenceObserver
from .theme.models import ThemeId

__version__ = "0.1.0"

__all__ = [
    "EngineSettings",
    "EventBus",
    "InvalidSnapshotError",
    "InvalidThemeError",
    "MalformedValueError",
    "ResolvedPreference",
    "RouteOverrideLayer",
    "SettingsStore",
    "SourceUnavailableError",
    "SystemPreferenceObserver",
    "ThemeEngine",
    "ThemeError",
    "ThemeId",
    "ThemeSnapshot",
    "ThemeState",
    "__version__",
]
