"""Standardized error types for the theme engine.

Adapter failures (:class:`SourceUnavailableError`, :class:`MalformedValueError`)
are absorbed by the engine and only logged. Caller misuse
(:class:`InvalidThemeError`, :class:`InvalidSnapshotError`) is raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar


class ErrorCode:
    """Constants for machine-readable error codes."""

    SOURCE_UNAVAILABLE = "source_unavailable"
    MALFORMED_VALUE = "malformed_value"
    INVALID_THEME = "invalid_theme"
    INVALID_SNAPSHOT = "invalid_snapshot"


@dataclass
class ThemeError(Exception):
    """Base exception class for all theme engine errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    # Whether the engine surfaces this error to callers
    caller_facing: ClassVar[bool] = False

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dictionary for logs and CLI output."""
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class SourceUnavailableError(ThemeError):
    """A backing store could not be read or written."""

    error_code: str = field(default=ErrorCode.SOURCE_UNAVAILABLE)
    message: str = field(default="Preference source is unavailable")
    details: dict[str, Any] = field(default_factory=dict)

    source: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.source is not None:
            result["source"] = self.source
        return result


@dataclass
class MalformedValueError(ThemeError):
    """A persisted or supplied value is not a recognized theme identifier."""

    error_code: str = field(default=ErrorCode.MALFORMED_VALUE)
    message: str = field(default="Value is not a recognized theme")
    details: dict[str, Any] = field(default_factory=dict)

    source: str | None = field(default=None)
    value: Any = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.source is not None:
            result["source"] = self.source
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


@dataclass
class InvalidThemeError(ThemeError):
    """A caller requested a theme change with an unknown identifier."""

    error_code: str = field(default=ErrorCode.INVALID_THEME)
    message: str = field(default="Unknown theme identifier")
    details: dict[str, Any] = field(default_factory=dict)

    value: Any = field(default=None)

    caller_facing: ClassVar[bool] = True

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["value"] = repr(self.value)
        return result


@dataclass
class InvalidSnapshotError(MalformedValueError):
    """An imported preference snapshot was rejected."""

    error_code: str = field(default=ErrorCode.INVALID_SNAPSHOT)
    message: str = field(default="Theme snapshot is invalid")
    details: dict[str, Any] = field(default_factory=dict)

    caller_facing: ClassVar[bool] = True


__all__ = [
    "ErrorCode",
    "InvalidSnapshotError",
    "InvalidThemeError",
    "MalformedValueError",
    "SourceUnavailableError",
    "ThemeError",
]
