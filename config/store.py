"""Hierarchical key/value store backing the configuration merge.

Values live in a nested dict addressed by dot-delimited key paths. Every
``load`` overwrites at the exact path it names: a later scalar replaces an
earlier subtree and vice versa, while paths the later source does not name
keep their previous value.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

DELIMITER = "."

Pairs = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def split_key(key: str, delimiter: str = DELIMITER) -> List[str]:
    """Normalize a key path into its lowercase segments.

    Empty segments are dropped, so ``"Server..Port"`` yields ``["server", "port"]``.
    """
    return [seg.strip().lower() for seg in key.split(delimiter) if seg.strip()]


def normalize_key(key: str, delimiter: str = DELIMITER) -> str:
    return DELIMITER.join(split_key(key, delimiter))


def flatten(nested: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten a nested mapping into ``{"a.b.c": value}`` pairs.

    Mappings recurse; every other value (including lists) is a leaf. Empty
    mappings produce no pairs.
    """
    flat: Dict[str, Any] = {}
    for key, value in nested.items():
        path = f"{prefix}{DELIMITER}{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten(value, path))
        else:
            flat[path] = value
    return flat


class KeyValueStore:
    """Ordered, dot-delimited hierarchical store with last-write-wins loads.

    Besides the values the store tracks which source last wrote each leaf,
    so later stages can say where a bad value came from.
    """

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._sources: Dict[str, str] = {}

    def load(self, pairs: Pairs, source: str = "", delimiter: str = DELIMITER) -> int:
        """Write raw pairs into the store, overwriting at each exact path.

        Args:
            pairs: Mapping or iterable of (key path, value)
            source: Name recorded as provenance of the written paths
            delimiter: Segment delimiter used by the incoming keys

        Returns:
            Number of pairs written
        """
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        written = 0
        for key, value in items:
            segments = split_key(key, delimiter)
            if not segments:
                continue
            self._set(segments, value, source)
            written += 1
        return written

    def _set(self, segments: List[str], value: Any, source: str) -> None:
        node = self._data
        for depth, seg in enumerate(segments[:-1]):
            child = node.get(seg)
            if not isinstance(child, dict):
                # a scalar (or nothing) sits where a section is needed
                self._forget(DELIMITER.join(segments[:depth + 1]))
                child = {}
                node[seg] = child
            node = child

        path = DELIMITER.join(segments)
        self._forget(path)
        if isinstance(value, Mapping):
            # nested values are stored as plain dicts with normalized keys
            node[segments[-1]] = {}
            for sub_key, sub_value in flatten(value).items():
                self._set(segments + split_key(sub_key), sub_value, source)
        else:
            node[segments[-1]] = value
            self._sources[path] = source

    def _forget(self, path: str) -> None:
        """Drop provenance for ``path`` and everything below it."""
        below = path + DELIMITER
        for known in [p for p in self._sources if p == path or p.startswith(below)]:
            del self._sources[known]

    def _lookup(self, path: str) -> Tuple[bool, Any]:
        node: Any = self._data
        for seg in split_key(path):
            if not isinstance(node, dict) or seg not in node:
                return False, None
            node = node[seg]
        return True, node

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value (scalar or nested dict copy) at ``path``."""
        found, value = self._lookup(path)
        if not found:
            return default
        return copy.deepcopy(value) if isinstance(value, dict) else value

    def exists(self, path: str) -> bool:
        return self._lookup(path)[0]

    def source_of(self, path: str) -> Optional[str]:
        """Name of the source that last wrote the leaf at ``path``."""
        return self._sources.get(normalize_key(path))

    def keys(self) -> List[str]:
        """Leaf key paths in insertion order."""
        return list(flatten(self._data).keys())

    def all(self) -> Dict[str, Any]:
        """Flat copy of every leaf value."""
        return copy.deepcopy(flatten(self._data))

    def raw(self) -> Dict[str, Any]:
        """Deep copy of the nested representation."""
        return copy.deepcopy(self._data)

    def __contains__(self, path: str) -> bool:
        return self.exists(path)

    def __len__(self) -> int:
        return len(self.keys())


__all__ = ["KeyValueStore", "DELIMITER", "flatten", "split_key", "normalize_key"]
