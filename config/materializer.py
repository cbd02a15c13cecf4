"""Materialization of the merged key/value store into typed configuration.

The materializer walks the dataclass schema, looks up every declared field in
the store and coerces the untyped raw value to the field's type. The first
failure aborts the walk; a partially built configuration is never returned.
"""
from __future__ import annotations

import dataclasses
import re
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Set, Union, get_args, get_origin, get_type_hints

from loguru import logger

from config.schema import AppConfig, is_section, schema_key_paths
from config.store import KeyValueStore
from core.exceptions import MissingKeyError, TypeCoercionError, UnknownEnumValue

_INT_RE = re.compile(r"^[+-]?\d+$")
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_DURATION_UNITS: Dict[str, Callable[[float], timedelta]] = {
    "ns": lambda v: timedelta(microseconds=v / 1000),
    "us": lambda v: timedelta(microseconds=v),
    "µs": lambda v: timedelta(microseconds=v),
    "μs": lambda v: timedelta(microseconds=v),
    "ms": lambda v: timedelta(milliseconds=v),
    "s": lambda v: timedelta(seconds=v),
    "m": lambda v: timedelta(minutes=v),
    "h": lambda v: timedelta(hours=v),
}

_TRUE = {"1", "t", "true"}
_FALSE = {"0", "f", "false"}


def parse_duration(text: str) -> timedelta:
    """Parse a duration literal such as ``"5m"``, ``"1h30m"`` or ``"-1.5s"``.

    A bare number is read as milliseconds.

    Raises:
        ValueError: If ``text`` is not a duration literal
    """
    s = text.strip()
    if _NUMBER_RE.match(s):
        return timedelta(milliseconds=float(s))

    sign = 1
    if s and s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if not s:
        raise ValueError(f"invalid duration {text!r}")

    total = timedelta()
    pos = 0
    while pos < len(s):
        match = _DURATION_PART_RE.match(s, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += _DURATION_UNITS[match.group(2)](float(match.group(1)))
        pos = match.end()
    return total * sign


def to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"{value!r} is not a whole number")
        return int(value)
    if isinstance(value, str) and _INT_RE.match(value.strip()):
        return int(value.strip())
    raise ValueError(f"{value!r} is not an integer")


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ValueError(f"{value!r} is not a boolean")


def to_duration(value: Any) -> timedelta:
    if isinstance(value, bool):
        raise ValueError("booleans are not durations")
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(milliseconds=value)
    if isinstance(value, str):
        return parse_duration(value)
    raise ValueError(f"{value!r} is not a duration")


def to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValueError(f"{value!r} is not a string")


_COERCERS: Dict[type, Callable[[Any], Any]] = {
    bool: to_bool,
    int: to_int,
    str: to_str,
    timedelta: to_duration,
}


def to_enum(enum_type: type, value: Any) -> Enum:
    """Resolve ``value`` to a member of ``enum_type`` by value or by name.

    Raises:
        ValueError: If nothing matches
    """
    members = list(enum_type)
    if isinstance(value, bool):
        raise ValueError(f"{value!r} is not a {enum_type.__name__}")

    candidates = [value]
    if isinstance(value, str):
        text = value.strip()
        candidates = [text, text.lower()]
        if _INT_RE.match(text):
            candidates.append(int(text))

    for candidate in candidates:
        for member in members:
            if member.value == candidate:
                return member
    if isinstance(value, str):
        by_name = value.strip().upper()
        for member in members:
            if member.name == by_name:
                return member
    raise ValueError(f"{value!r} is not a {enum_type.__name__}")


def _unwrap_optional(tp) -> tuple:
    """Return ``(inner type, is_optional)`` for ``Optional[X]`` annotations."""
    if get_origin(tp) is Union:
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return tp, False


class Materializer:
    """Builds an immutable :class:`AppConfig` from a merged store."""

    def __init__(self, schema: type = AppConfig):
        self.schema = schema

    def materialize(self, store: KeyValueStore) -> Any:
        """Coerce every schema field from the store.

        Raises:
            TypeCoercionError: If a value cannot be converted (or is missing)
            UnknownEnumValue: If an enum field holds an unrecognized value
        """
        config = self._build(self.schema, "", store)
        self._warn_unknown(store)
        return config

    def _build(self, section: type, prefix: str, store: KeyValueStore) -> Any:
        hints = get_type_hints(section)
        values: Dict[str, Any] = {}
        for f in dataclasses.fields(section):
            path = f"{prefix}.{f.name}" if prefix else f.name
            tp, optional = _unwrap_optional(hints[f.name])

            if is_section(tp):
                raw = store.get(path)
                if raw is not None and not isinstance(raw, Mapping):
                    raise TypeCoercionError(
                        f"expected a section, got {raw!r}{self._origin(store, path)}", key=path
                    )
                values[f.name] = self._build(tp, path, store)
                continue

            if not store.exists(path):
                if optional:
                    values[f.name] = None
                elif f.default is not dataclasses.MISSING:
                    values[f.name] = f.default
                else:
                    raise MissingKeyError("no value provided by any source", key=path)
                continue

            values[f.name] = self._coerce(tp, store.get(path), path, store)
        return section(**values)

    def _coerce(self, tp, raw: Any, path: str, store: KeyValueStore) -> Any:
        if isinstance(tp, type) and issubclass(tp, Enum):
            try:
                return to_enum(tp, raw)
            except ValueError:
                allowed = ", ".join(str(m.value) for m in tp)
                raise UnknownEnumValue(
                    f"{raw!r} is not one of: {allowed}{self._origin(store, path)}", key=path
                ) from None

        coercer = _COERCERS.get(tp)
        if coercer is None:
            raise TypeCoercionError(f"unsupported field type {tp!r}", key=path)
        try:
            return coercer(raw)
        except (ValueError, OverflowError) as e:
            raise TypeCoercionError(
                f"cannot convert to {tp.__name__}: {e}{self._origin(store, path)}", key=path
            ) from e

    @staticmethod
    def _origin(store: KeyValueStore, path: str) -> str:
        source = store.source_of(path)
        return f" (from {source})" if source else ""

    def _warn_unknown(self, store: KeyValueStore) -> None:
        declared: Set[str] = set(schema_key_paths(self.schema))
        for key in store.keys():
            if key not in declared:
                logger.warning("Ignoring unknown configuration key {} (from {})", key, store.source_of(key))


__all__ = ["Materializer", "parse_duration", "to_int", "to_bool", "to_duration", "to_enum"]
