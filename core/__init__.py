"""Core infrastructure components shared across the application."""
from __future__ import annotations

from .exceptions import (
    CuriosityException,
    ConfigurationError,
    FileReadError,
    FileParseError,
    EnvScanError,
    TypeCoercionError,
    MissingKeyError,
    UnknownEnumValue,
)
from .result import Result, Success, Failure

__all__ = [
    "CuriosityException",
    "ConfigurationError",
    "FileReadError",
    "FileParseError",
    "EnvScanError",
    "TypeCoercionError",
    "MissingKeyError",
    "UnknownEnumValue",
    "Result",
    "Success",
    "Failure",
]
