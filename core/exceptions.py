"""Custom exception hierarchy for the application."""
from __future__ import annotations

from typing import Optional


class CuriosityException(Exception):
    """Base exception for all curiosity errors."""
    pass


class ConfigurationError(CuriosityException):
    """Raised when configuration cannot be loaded or is invalid.

    Attributes:
        message: Human readable description of the problem
        stage: Loader stage in which the error surfaced (e.g. "file_merge")
        key: Key path the error refers to, if any
    """

    def __init__(self, message: str, stage: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.key = key

    def __str__(self) -> str:
        prefix = f"[{self.stage}] " if self.stage else ""
        location = f"{self.key}: " if self.key else ""
        return f"{prefix}{location}{self.message}"


class FileReadError(ConfigurationError):
    """Raised when the configuration file is missing or unreadable."""
    pass


class FileParseError(ConfigurationError):
    """Raised when the configuration file is not a valid document."""
    pass


class EnvScanError(ConfigurationError):
    """Raised when the process environment cannot be enumerated."""
    pass


class TypeCoercionError(ConfigurationError):
    """Raised when a raw value cannot be converted to its declared type."""
    pass


class MissingKeyError(TypeCoercionError):
    """Raised when a required key has no value in any source."""
    pass


class UnknownEnumValue(ConfigurationError):
    """Raised when a value is not a member of the field's enumeration."""
    pass
