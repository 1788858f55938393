"""Common interface for the synchronous preference stores."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..errors import SourceUnavailableError
from ..theme.models import ThemeId

TRUE_TOKEN = "true"
FALSE_TOKEN = "false"


class PreferenceAdapter(ABC):
    """A named backing store holding a theme identifier and the auto flag.

    Reads return the raw stored token, or ``None`` when nothing is stored.
    Validation of that token is left to the caller so that a malformed value
    can be logged with the adapter's name. Failures raise
    :class:`SourceUnavailableError`.
    """

    name: str = "unknown"
    writable: bool = True

    @abstractmethod
    def read_theme(self) -> str | None:
        """Return the stored theme token."""

    def read_auto_mode(self) -> str | None:
        """Return the stored auto-mode token (``"true"``/``"false"``)."""
        return None

    def write_theme(self, theme: ThemeId) -> None:
        raise SourceUnavailableError(message=f"{self.name} is read-only", source=self.name)

    def write_auto_mode(self, enabled: bool) -> None:
        raise SourceUnavailableError(message=f"{self.name} is read-only", source=self.name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


def encode_flag(enabled: bool) -> str:
    return TRUE_TOKEN if enabled else FALSE_TOKEN


__all__ = ["FALSE_TOKEN", "PreferenceAdapter", "TRUE_TOKEN", "encode_flag"]
