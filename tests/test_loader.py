"""Tests for the layered configuration loader."""
from datetime import timedelta
from unittest.mock import Mock

import pytest
from loguru import logger

from config.loader import Loader, LoadStage, load_config
from config.schema import AppConfig
from core.exceptions import EnvScanError, FileParseError, FileReadError, TypeCoercionError


@pytest.fixture
def config_file(tmp_path):
    """Write a config.toml and return its path."""
    def _write(content: str = ""):
        path = tmp_path / "config.toml"
        path.write_text(content)
        return path
    return _write


class TestPrecedence:
    """Default < file < environment."""

    def test_file_overrides_default(self, config_file):
        # Arrange
        path = config_file("[server]\nport = 7000\n")

        # Act
        config = Loader(path, environ={}).load().unwrap()

        # Assert
        assert config.server.port == 7000

    def test_env_overrides_file_and_default(self, config_file):
        # Arrange
        path = config_file("[server]\nport = 7000\n")

        # Act
        config = Loader(path, environ={"SPACEBIN_SERVER_PORT": "8080"}).load().unwrap()

        # Assert
        assert config.server.port == 8080

    def test_untouched_keys_keep_defaults(self, config_file):
        # Arrange
        path = config_file("[documents]\nid_length = 12\n")

        # Act
        config = Loader(path, environ={"SPACEBIN_SECURITY_USE_CORS": "false"}).load().unwrap()

        # Assert
        assert config.documents.id_length == 12
        assert config.security.use_cors is False
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 9000
        assert config.documents.max_document_length == 400000
        assert config.documents.max_age == 2592000
        assert config.server.ratelimits.requests == 200
        assert config.server.ratelimits.duration == timedelta(minutes=5)

    def test_env_duration_literal_and_file_integer_agree(self, config_file):
        # Arrange
        path = config_file("[server.ratelimits]\nduration = 300000\n")

        # Act
        from_file = Loader(path, environ={}).load().unwrap()
        from_env = Loader(path, environ={"SPACEBIN_SERVER_RATELIMITS_DURATION": "5m"}).load().unwrap()

        # Assert
        assert from_file.server.ratelimits.duration == from_env.server.ratelimits.duration

    def test_env_reaches_underscored_fields(self, config_file):
        # Arrange
        path = config_file()
        environ = {
            "SPACEBIN_DOCUMENTS_MAX_AGE": "3600",
            "SPACEBIN_DATABASE_CONNECTION_URI": "sqlite:///paste.db",
            "SPACEBIN_DATABASE_DIALECT": "sqlite",
        }

        # Act
        config = Loader(path, environ=environ).load().unwrap()

        # Assert
        assert config.documents.max_age == 3600
        assert config.database.connection_uri == "sqlite:///paste.db"
        assert config.database.dialect.value == "sqlite"


class TestEndToEnd:
    """Full pipeline scenarios."""

    def test_port_from_env_with_override_free_file(self, config_file):
        # Arrange
        path = config_file("# nothing overridden\n[server]\n")

        # Act
        result = Loader(path, environ={"SPACEBIN_SERVER_PORT": "8080"}).load()

        # Assert
        assert result.is_success()
        config = result.unwrap()
        assert isinstance(config, AppConfig)
        assert config.server.port == 8080
        assert config.server.host == "0.0.0.0"

    def test_malformed_boolean_aborts(self, config_file):
        # Arrange
        path = config_file('[security]\nuse_cors = "maybe"\n')
        loader = Loader(path, environ={})

        # Act
        result = loader.load()

        # Assert
        assert result.is_failure()
        assert isinstance(result.error, TypeCoercionError)
        assert result.error.stage == "materialize"
        assert result.error.key == "security.use_cors"
        assert result.unwrap_or(None) is None
        assert loader.stage is LoadStage.ABORTED

    def test_missing_file_aborts_in_file_stage(self, tmp_path):
        # Arrange
        loader = Loader(tmp_path / "absent.toml", environ={})

        # Act
        result = loader.load()

        # Assert
        assert isinstance(result.error, FileReadError)
        assert result.error.stage == "file_merge"
        assert "[file_merge]" in str(result.error)

    def test_malformed_file_aborts(self, config_file):
        # Arrange
        path = config_file("[server\n")

        # Act
        result = Loader(path, environ={}).load()

        # Assert
        assert isinstance(result.error, FileParseError)

    def test_empty_quoted_key_aborts_in_file_stage(self, config_file):
        # Arrange
        path = config_file('[server]\n"" = 1\n')

        # Act
        result = Loader(path, environ={}).load()

        # Assert
        assert isinstance(result.error, FileParseError)
        assert not isinstance(result.error, TypeCoercionError)
        assert result.error.stage == "file_merge"
        assert result.error.key == "server."

    def test_failure_is_not_logged_as_error_by_loader(self, config_file):
        # Arrange
        path = config_file('[security]\nuse_cors = "maybe"\n')
        levels = []
        sink_id = logger.add(lambda message: levels.append(message.record["level"].name), level="DEBUG")

        # Act
        try:
            result = Loader(path, environ={}).load()
        finally:
            logger.remove(sink_id)

        # Assert
        assert result.is_failure()
        assert "ERROR" not in levels
        assert "DEBUG" in levels

    def test_env_scan_failure_aborts_in_env_stage(self, config_file):
        # Arrange
        class BrokenEnviron(dict):
            def items(self):
                raise RuntimeError("boom")

        loader = Loader(config_file(), environ=BrokenEnviron())

        # Act
        result = loader.load()

        # Assert
        assert isinstance(result.error, EnvScanError)
        assert result.error.stage == "env_merge"

    def test_unwrap_raises_on_failure(self, config_file):
        # Arrange
        path = config_file('[server]\nport = "eighty"\n')

        # Assert
        with pytest.raises(TypeCoercionError):
            load_config(path, environ={}).unwrap()


class TestStateMachine:
    """Stage ordering and one-shot behavior."""

    def test_stages_run_in_order(self, config_file):
        # Arrange
        loader = Loader(config_file(), environ={})
        seen = []
        for provider in (loader.defaults_provider, loader.file_provider, loader.env_provider):
            original = provider.read
            provider.read = Mock(side_effect=lambda original=original: seen.append(loader.stage) or original())

        # Act
        loader.load()

        # Assert
        assert seen == [LoadStage.DEFAULTS, LoadStage.FILE_MERGE, LoadStage.ENV_MERGE]
        assert loader.stage is LoadStage.READY

    def test_failure_stops_later_stages(self, tmp_path):
        # Arrange
        loader = Loader(tmp_path / "absent.toml", environ={})
        loader.env_provider.read = Mock(return_value={})

        # Act
        loader.load()

        # Assert
        loader.env_provider.read.assert_not_called()

    def test_load_is_one_shot(self, config_file):
        # Arrange
        loader = Loader(config_file(), environ={})
        first = loader.load()
        loader.file_provider.read = Mock(return_value={})

        # Act
        second = loader.load()

        # Assert
        assert second is first
        loader.file_provider.read.assert_not_called()

    def test_initial_stage_is_pending(self, config_file):
        # Assert
        assert Loader(config_file(), environ={}).stage is LoadStage.PENDING
        assert LoadStage.READY.terminal
        assert not LoadStage.ENV_MERGE.terminal
