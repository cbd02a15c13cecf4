"""Typed configuration schema for the curiosity paste server.

The dataclasses below are the fixed schema the merged key/value store is
materialized against. Field names double as key path segments, so
``AppConfig.server.ratelimits.duration`` is addressed as
``server.ratelimits.duration``.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum, IntEnum
from typing import List, Optional, get_type_hints


class CompressionLevel(IntEnum):
    """HTTP response compression level."""
    DISABLED = -1
    DEFAULT = 0
    BEST_SPEED = 1
    BEST_COMPRESSION = 2


class DatabaseDialect(str, Enum):
    """Supported database backends."""
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    SQLSERVER = "sqlserver"


@dataclass(frozen=True)
class RateLimitConfig:
    """Request rate limiting.

    Attributes:
        requests: Requests allowed per window
        duration: Length of the window
    """
    requests: int
    duration: timedelta


@dataclass(frozen=True)
class ServerConfig:
    """HTTP listener settings.

    Attributes:
        host: Interface to bind
        port: TCP port to bind
        compression_level: Response compression level
        prefork: Spawn one listener process per core
        ratelimits: Rate limiting settings
    """
    host: str
    port: int
    compression_level: CompressionLevel
    prefork: bool
    ratelimits: RateLimitConfig


@dataclass(frozen=True)
class DocumentsConfig:
    """Document storage limits.

    Attributes:
        id_length: Length of generated document identifiers
        max_document_length: Maximum document size in characters
        max_age: Document lifetime in seconds
    """
    id_length: int
    max_document_length: int
    max_age: int


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection settings. Both fields are optional."""
    dialect: Optional[DatabaseDialect] = None
    connection_uri: Optional[str] = None


@dataclass(frozen=True)
class SecurityConfig:
    use_cors: bool


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    server: ServerConfig
    documents: DocumentsConfig
    database: DatabaseConfig
    security: SecurityConfig


def is_section(tp) -> bool:
    """Return True when ``tp`` is a nested configuration section."""
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def schema_key_paths(schema: type = AppConfig, prefix: str = "") -> List[str]:
    """List every leaf key path declared by ``schema`` in field order.

    Args:
        schema: Dataclass describing a configuration section
        prefix: Key path of the section itself

    Returns:
        Dot-delimited leaf key paths, e.g. ``["server.host", ...]``
    """
    paths: List[str] = []
    hints = get_type_hints(schema)
    for f in dataclasses.fields(schema):
        path = f"{prefix}.{f.name}" if prefix else f.name
        tp = hints[f.name]
        if is_section(tp):
            paths.extend(schema_key_paths(tp, path))
        else:
            paths.append(path)
    return paths


__all__ = [
    "AppConfig",
    "ServerConfig",
    "RateLimitConfig",
    "DocumentsConfig",
    "DatabaseConfig",
    "SecurityConfig",
    "CompressionLevel",
    "DatabaseDialect",
    "is_section",
    "schema_key_paths",
]
