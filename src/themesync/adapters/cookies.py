"""Cookie-backed preference storage.

The jar mirrors the browser's ``document.cookie`` model: reads see a single
``name=value; name=value`` string, writes assign one ``Set-Cookie`` style line
at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime, parsedate_to_datetime
from http.cookies import CookieError, Morsel, SimpleCookie
from typing import Callable, Dict, Iterator
from urllib.parse import quote, unquote

from ..errors import SourceUnavailableError
from ..theme.models import ThemeId
from .base import PreferenceAdapter, encode_flag

LOGGER = logging.getLogger(__name__)

THEME_COOKIE = "theme"
AUTO_THEME_COOKIE = "autoTheme"
DEFAULT_MAX_AGE_DAYS = 365

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class _StoredCookie:
    value: str
    expires: datetime | None
    path: str
    same_site: str | None


def parse_cookie_string(cookie_string: str) -> Dict[str, str]:
    """Split a ``document.cookie`` string into raw (still encoded) values."""

    values: Dict[str, str] = {}
    for chunk in (cookie_string or "").split(";"):
        name, sep, value = chunk.strip().partition("=")
        if not sep or not name:
            continue
        values[name] = value
    return values


class CookieJar:
    """In-process stand-in for the client's cookie jar."""

    def __init__(
        self,
        cookie_string: str = "",
        *,
        enabled: bool = True,
        clock: Clock | None = None,
    ) -> None:
        self._clock = clock or _utcnow
        self._enabled = enabled
        self._cookies: Dict[str, _StoredCookie] = {
            name: _StoredCookie(value=value, expires=None, path="/", same_site=None)
            for name, value in parse_cookie_string(cookie_string).items()
        }

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    def _require_enabled(self) -> None:
        if not self._enabled:
            raise SourceUnavailableError(message="Cookies are disabled", source="cookies")

    def assign(self, header: str) -> None:
        """Store one ``name=value; attr=...`` line, like ``document.cookie = header``."""

        self._require_enabled()
        parsed = SimpleCookie()
        try:
            parsed.load(header)
        except CookieError as exc:
            raise SourceUnavailableError(
                message=f"Cookie line rejected: {exc}", source="cookies"
            ) from exc
        for name, morsel in parsed.items():
            self._store(name, morsel)

    def _store(self, name: str, morsel: Morsel) -> None:
        expires: datetime | None = None
        raw_expires = morsel["expires"]
        if raw_expires:
            try:
                expires = parsedate_to_datetime(str(raw_expires))
            except (TypeError, ValueError):
                LOGGER.debug("Ignoring unparsable cookie expiry %r for %s", raw_expires, name)
        if expires is not None and expires <= self._clock():
            self._cookies.pop(name, None)
            return
        self._cookies[name] = _StoredCookie(
            value=morsel.value,
            expires=expires,
            path=morsel["path"] or "/",
            same_site=morsel["samesite"] or None,
        )

    def _live(self) -> Iterator[tuple[str, _StoredCookie]]:
        now = self._clock()
        for name, cookie in list(self._cookies.items()):
            if cookie.expires is not None and cookie.expires <= now:
                del self._cookies[name]
                continue
            yield name, cookie

    @property
    def cookie_string(self) -> str:
        self._require_enabled()
        return "; ".join(f"{name}={cookie.value}" for name, cookie in self._live())

    def get(self, name: str) -> str | None:
        self._require_enabled()
        for cookie_name, cookie in self._live():
            if cookie_name == name:
                return cookie.value
        return None

    def attributes(self, name: str) -> dict[str, object] | None:
        cookie = self._cookies.get(name)
        if cookie is None:
            return None
        return {"expires": cookie.expires, "path": cookie.path, "samesite": cookie.same_site}


class CookieStore(PreferenceAdapter):
    """Stores ``theme`` and ``autoTheme`` cookies with a long expiry."""

    name = "cookies"

    def __init__(
        self,
        jar: CookieJar | None = None,
        *,
        max_age_days: int = DEFAULT_MAX_AGE_DAYS,
        path: str = "/",
        same_site: str = "Strict",
        clock: Clock | None = None,
    ) -> None:
        self._jar = jar if jar is not None else CookieJar(clock=clock)
        self._max_age = timedelta(days=max_age_days)
        self._path = path
        self._same_site = same_site
        self._clock = clock or _utcnow
        self._headers: Dict[str, str] = {}

    @property
    def jar(self) -> CookieJar:
        return self._jar

    @property
    def headers(self) -> Dict[str, str]:
        """Last ``Set-Cookie`` value written per cookie name."""
        return dict(self._headers)

    def build_header(self, name: str, value: str) -> str:
        cookie = SimpleCookie()
        cookie[name] = quote(value, safe="")
        morsel = cookie[name]
        morsel["expires"] = format_datetime(self._clock() + self._max_age, usegmt=True)
        morsel["path"] = self._path
        morsel["samesite"] = self._same_site
        return morsel.OutputString()

    def set_cookie(self, name: str, value: str) -> str:
        header = self.build_header(name, value)
        self._jar.assign(header)
        self._headers[name] = header
        return header

    def get_cookie(self, name: str) -> str | None:
        raw = self._jar.get(name)
        if raw is None or raw == "":
            return None
        return unquote(raw)

    def read_theme(self) -> str | None:
        return self.get_cookie(THEME_COOKIE)

    def read_auto_mode(self) -> str | None:
        return self.get_cookie(AUTO_THEME_COOKIE)

    def write_theme(self, theme: ThemeId) -> None:
        self.set_cookie(THEME_COOKIE, ThemeId(theme).value)

    def write_auto_mode(self, enabled: bool) -> None:
        self.set_cookie(AUTO_THEME_COOKIE, encode_flag(enabled))


__all__ = [
    "AUTO_THEME_COOKIE",
    "CookieJar",
    "CookieStore",
    "DEFAULT_MAX_AGE_DAYS",
    "THEME_COOKIE",
    "parse_cookie_string",
]
