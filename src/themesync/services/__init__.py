"""Configuration, persistence and snapshot services for the theme engine."""

from .persistence import PersistenceSynchronizer, PersistReport
from .settings import EngineSettings, SettingsStore
from .snapshot import ThemeSnapshot, parse_snapshot, read_snapshot

__all__ = [
    "EngineSettings",
    "PersistReport",
    "PersistenceSynchronizer",
    "SettingsStore",
    "ThemeSnapshot",
    "parse_snapshot",
    "read_snapshot",
]
