"""Configuration service facade for collaborators.

Wraps the immutable :class:`AppConfig` with flat read-only accessors so that
route registration and listener binding code does not reach through nested
sections, and provides a serializable view with secrets redacted.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from config.schema import AppConfig, CompressionLevel, DatabaseDialect

REDACTED = "***"


class ConfigurationService:
    """Read-only facade over a loaded configuration.

    Example:
        service = ConfigurationService(config)
        service.port  # instead of config.server.port
    """

    def __init__(self, config: AppConfig):
        self._config = config

    # Server
    @property
    def host(self) -> str:
        return self._config.server.host

    @property
    def port(self) -> int:
        return self._config.server.port

    @property
    def listen_address(self) -> str:
        """Address in ``host:port`` form for the listener."""
        return f"{self.host}:{self.port}"

    @property
    def compression_level(self) -> CompressionLevel:
        return self._config.server.compression_level

    @property
    def prefork(self) -> bool:
        return self._config.server.prefork

    @property
    def ratelimit_requests(self) -> int:
        return self._config.server.ratelimits.requests

    @property
    def ratelimit_window(self) -> timedelta:
        return self._config.server.ratelimits.duration

    # Documents
    @property
    def id_length(self) -> int:
        return self._config.documents.id_length

    @property
    def max_document_length(self) -> int:
        return self._config.documents.max_document_length

    @property
    def max_age(self) -> timedelta:
        """Document lifetime as a timedelta (stored in seconds)."""
        return timedelta(seconds=self._config.documents.max_age)

    # Database
    @property
    def database_dialect(self) -> Optional[DatabaseDialect]:
        return self._config.database.dialect

    @property
    def connection_uri(self) -> Optional[str]:
        return self._config.database.connection_uri

    # Security
    @property
    def use_cors(self) -> bool:
        return self._config.security.use_cors

    @property
    def raw_config(self) -> AppConfig:
        """Underlying AppConfig instance for direct access."""
        return self._config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a JSON-friendly dictionary.

        Durations are rendered in milliseconds, enums by value, and the
        database connection URI is redacted.
        """
        return {
            "server": {
                "host": self.host,
                "port": self.port,
                "compression_level": self.compression_level.name.lower(),
                "prefork": self.prefork,
                "ratelimits": {
                    "requests": self.ratelimit_requests,
                    "duration": int(self.ratelimit_window / timedelta(milliseconds=1)),
                },
            },
            "documents": {
                "id_length": self.id_length,
                "max_document_length": self.max_document_length,
                "max_age": self._config.documents.max_age,
            },
            "database": {
                "dialect": self.database_dialect.value if self.database_dialect else None,
                "connection_uri": REDACTED if self.connection_uri else None,
            },
            "security": {
                "use_cors": self.use_cors,
            },
        }


class ConfigurationServiceFactory:
    @staticmethod
    def create_from_config(config: AppConfig) -> ConfigurationService:
        """Wrap a freshly loaded configuration for collaborators."""
        return ConfigurationService(config)
