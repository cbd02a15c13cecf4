"""Outcome of a configuration load.

``Loader.load()`` never raises for a misconfiguration; it hands back either
``Success(config)`` or ``Failure(error)`` and the entry point picks the exit
status.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from core.exceptions import ConfigurationError

T = TypeVar('T')


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """A load that stopped at its first configuration error."""
    error: ConfigurationError

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def unwrap(self):
        """Re-raise the stored configuration error."""
        raise self.error

    def unwrap_or(self, default):
        return default


Result = Union[Success[T], Failure]
