"""Configuration source providers.

Each provider is a pure producer of flat ``{key path: raw value}`` pairs. The
loader feeds them to the key/value store in precedence order:

1. DefaultProvider (compiled-in table, lowest priority)
2. FileProvider (``config.toml``)
3. EnvProvider (``SPACEBIN_*`` variables, highest priority)
"""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from loguru import logger

from config.store import DELIMITER, flatten
from core.exceptions import EnvScanError, FileParseError, FileReadError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("./config.toml")
ENV_PREFIX = "SPACEBIN_"

DEFAULTS: Dict[str, Any] = {
    "server.host": "0.0.0.0",
    "server.port": 9000,
    "server.compression_level": -1,
    "server.prefork": False,
    "server.ratelimits.requests": 200,
    "server.ratelimits.duration": 300_000,  # milliseconds
    "documents.id_length": 8,
    "documents.max_document_length": 400_000,
    "documents.max_age": 2_592_000,  # seconds
    "security.use_cors": True,
}


class DefaultProvider:
    """Emits a static table of fully-qualified defaults."""

    name = "defaults"

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None):
        self._defaults = dict(DEFAULTS if defaults is None else defaults)

    def read(self) -> Dict[str, Any]:
        return dict(self._defaults)


class FileProvider:
    """Reads and flattens a TOML configuration document.

    A missing or malformed file is fatal: the server must not start on a
    silently partial configuration.
    """

    name = "file"

    def __init__(self, path: Union[str, os.PathLike] = DEFAULT_CONFIG_PATH):
        self.path = Path(path)

    def read(self) -> Dict[str, Any]:
        """Parse the file into flat key path pairs.

        Raises:
            FileReadError: If the file is absent or cannot be read
            FileParseError: If the file is not valid TOML
        """
        try:
            content = self.path.read_bytes()
        except OSError as e:
            raise FileReadError(f"cannot read configuration file {self.path}: {e}") from e

        try:
            document = tomllib.loads(content.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise FileParseError(f"configuration file {self.path} is not valid UTF-8: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise FileParseError(f"malformed TOML in {self.path}: {e}") from e

        self._check_keys(document)
        pairs = flatten(document)
        logger.debug("Read {} key(s) from {}", len(pairs), self.path)
        return pairs

    def _check_keys(self, table: Mapping[str, Any], prefix: str = "") -> None:
        """Reject keys with an empty segment, which would collapse into their parent.

        Raises:
            FileParseError: Naming the offending key
        """
        for key, value in table.items():
            path = f"{prefix}{DELIMITER}{key}" if prefix else key
            if any(not seg.strip() for seg in key.split(DELIMITER)):
                raise FileParseError(f"empty key segment in {path!r} in {self.path}", key=path)
            if isinstance(value, Mapping):
                self._check_keys(value, path)


class EnvProvider:
    """Maps prefixed environment variables onto the key namespace.

    ``SPACEBIN_SERVER_PORT`` becomes ``server.port``: the prefix is stripped
    (case-sensitive match), the rest lowercased and every underscore turned
    into the key path delimiter.

    When ``known_paths`` is given, a rewritten path that is not known is
    matched against known paths whose own underscores were turned into
    delimiters, so ``SPACEBIN_DOCUMENTS_MAX_AGE`` reaches ``documents.max_age``.
    A spelling shared by several known paths is ambiguous and is not aliased.
    """

    name = "env"

    def __init__(
        self,
        prefix: str = ENV_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
        known_paths: Optional[Iterable[str]] = None,
    ):
        self.prefix = prefix
        self._environ = environ
        self._known = set(known_paths or ())
        self._aliases: Dict[str, str] = {}

        candidates: Dict[str, List[str]] = {}
        for path in sorted(self._known):
            spelled = path.replace("_", DELIMITER)
            if spelled != path and spelled not in self._known:
                candidates.setdefault(spelled, []).append(path)
        for spelled, paths in candidates.items():
            if len(paths) == 1:
                self._aliases[spelled] = paths[0]
            else:
                logger.warning(
                    "Environment spelling {} matches several keys ({}); not aliased",
                    spelled,
                    ", ".join(paths),
                )

    def key_for(self, name: str) -> str:
        """Translate an environment variable name into a key path."""
        path = name[len(self.prefix):].lower().replace("_", DELIMITER)
        path = DELIMITER.join(seg for seg in path.split(DELIMITER) if seg)
        if path in self._known:
            return path
        return self._aliases.get(path, path)

    def read(self) -> Dict[str, str]:
        """Collect matching variables.

        Raises:
            EnvScanError: If the environment cannot be enumerated
        """
        environ = os.environ if self._environ is None else self._environ
        try:
            snapshot = dict(environ.items())
        except Exception as e:
            raise EnvScanError(f"cannot enumerate environment: {e}") from e

        pairs: Dict[str, str] = {}
        for name, value in snapshot.items():
            if not name.startswith(self.prefix):
                continue
            key = self.key_for(name)
            if not key:
                logger.warning("Ignoring environment variable {} (no key after prefix)", name)
                continue
            pairs[key] = value
        logger.debug("Matched {} environment variable(s) with prefix {}", len(pairs), self.prefix)
        return pairs


__all__ = [
    "DefaultProvider",
    "FileProvider",
    "EnvProvider",
    "DEFAULTS",
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
]
