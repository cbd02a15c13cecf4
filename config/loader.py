"""Layered configuration loader.

Runs the configuration pipeline in a fixed order, each stage depending on the
store state left by the previous one:

1. Defaults     - compiled-in table
2. File merge   - ``config.toml`` on top of the defaults
3. Env merge    - ``SPACEBIN_*`` variables on top of both
4. Materialize  - coerce the merged store into a frozen :class:`AppConfig`

The loader never exits the process. ``load()`` returns ``Success(AppConfig)``
or ``Failure(ConfigurationError)`` and the caller decides what to do.
"""
from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from loguru import logger

from config.materializer import Materializer
from config.providers import DEFAULT_CONFIG_PATH, ENV_PREFIX, DefaultProvider, EnvProvider, FileProvider
from config.schema import AppConfig, schema_key_paths
from config.store import KeyValueStore
from core.error_handler import as_result, log_execution_time
from core.exceptions import ConfigurationError
from core.result import Result


class LoadStage(Enum):
    """Loader state machine positions."""
    PENDING = "pending"
    DEFAULTS = "defaults"
    FILE_MERGE = "file_merge"
    ENV_MERGE = "env_merge"
    MATERIALIZE = "materialize"
    READY = "ready"
    ABORTED = "aborted"

    @property
    def terminal(self) -> bool:
        return self in (LoadStage.READY, LoadStage.ABORTED)


class Loader:
    """One-shot orchestrator producing the process configuration.

    Attributes:
        stage: Current position in the state machine
    """

    def __init__(
        self,
        config_path: Union[str, os.PathLike] = DEFAULT_CONFIG_PATH,
        env_prefix: str = ENV_PREFIX,
        environ: Optional[Mapping[str, str]] = None,
        defaults: Optional[Mapping[str, Any]] = None,
    ):
        self.config_path = Path(config_path)
        self.defaults_provider = DefaultProvider(defaults)
        self.file_provider = FileProvider(self.config_path)
        self.env_provider = EnvProvider(env_prefix, environ, known_paths=schema_key_paths(AppConfig))
        self.materializer = Materializer(AppConfig)
        self.stage = LoadStage.PENDING
        self._result: Optional[Result[AppConfig]] = None

    def load(self) -> Result[AppConfig]:
        """Run every stage once and return the outcome.

        Later calls return the first outcome without touching any source.
        """
        if self._result is not None:
            return self._result

        result = self._run()
        if result.is_success():
            self.stage = LoadStage.READY
            logger.info("Configuration loaded")
        else:
            error = result.error
            if error.stage is None:
                error.stage = self.stage.value
            self.stage = LoadStage.ABORTED
            logger.debug("Configuration aborted in stage {}", error.stage)
        self._result = result
        return result

    @as_result(ConfigurationError)
    @log_execution_time(level="DEBUG")
    def _run(self) -> AppConfig:
        store = KeyValueStore()

        self._enter(LoadStage.DEFAULTS)
        store.load(self.defaults_provider.read(), source=self.defaults_provider.name)

        self._enter(LoadStage.FILE_MERGE)
        store.load(self.file_provider.read(), source=f"{self.file_provider.name} {self.config_path}")

        self._enter(LoadStage.ENV_MERGE)
        store.load(self.env_provider.read(), source=self.env_provider.name)

        self._enter(LoadStage.MATERIALIZE)
        return self.materializer.materialize(store)

    def _enter(self, stage: LoadStage) -> None:
        logger.debug("Configuration stage: {}", stage.value)
        self.stage = stage


def load_config(config_path: Union[str, os.PathLike] = DEFAULT_CONFIG_PATH, **kwargs) -> Result[AppConfig]:
    """Convenience function building a :class:`Loader` and running it."""
    return Loader(config_path, **kwargs).load()


__all__ = ["Loader", "LoadStage", "load_config"]
