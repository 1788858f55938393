"""Backing stores the engine reads preferences from and writes them to."""

from .base import PreferenceAdapter
from .cookies import CookieJar, CookieStore
from .local_store import LocalDeviceStore
from .remote import InMemoryRemoteUserStore, LocalRemoteUserStore, RemoteUserStore
from .server_marker import ServerMarker, parse_marker

__all__ = [
    "CookieJar",
    "CookieStore",
    "InMemoryRemoteUserStore",
    "LocalDeviceStore",
    "LocalRemoteUserStore",
    "PreferenceAdapter",
    "RemoteUserStore",
    "ServerMarker",
    "parse_marker",
]
