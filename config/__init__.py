"""Configuration package for the curiosity paste server.

Resolves one typed configuration from three layered sources, later sources
overriding earlier ones at the same key path:
- compiled-in defaults
- the ``config.toml`` file
- ``SPACEBIN_*`` environment variables

Main components:
- store.py: Hierarchical key/value store with last-write-wins loads
- providers.py: Default, file and environment providers
- schema.py: Frozen configuration dataclasses
- materializer.py: Type coercion from the store into the schema
- loader.py: Stage-by-stage orchestration returning a Result
- service.py: Facade for simplified configuration access
"""
from .loader import Loader, LoadStage, load_config
from .schema import AppConfig, CompressionLevel, DatabaseDialect

__all__ = ["Loader", "LoadStage", "load_config", "AppConfig", "CompressionLevel", "DatabaseDialect"]
