"""
Tests for the configuration system.
"""
import os
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from agent_dispatch.config import (
    FollowUpConfig,
    LoggingConfig,
    MessagingConfig,
    QueueConfig,
    Settings,
    configure,
    get_settings,
    load_env,
)
from agent_dispatch.config import settings as settings_module
from agent_dispatch.errors import ConfigError


class TestQueueConfig:
    """Test queue configuration."""

    def test_defaults(self):
        config = QueueConfig()

        assert config.agents == ("falcon", "sage", "sentinel")
        assert config.retention_limit == 100
        assert config.drain_delay == 0.0

    def test_agents_converted_to_tuple(self):
        config = QueueConfig(agents=["falcon", "research"])
        assert config.agents == ("falcon", "research")

    def test_validation(self):
        with pytest.raises(ValueError, match="agents must not be empty"):
            QueueConfig(agents=())

        with pytest.raises(ValueError, match="retention_limit"):
            QueueConfig(retention_limit=0)

        with pytest.raises(ValueError, match="drain_delay"):
            QueueConfig(drain_delay=0.5)


class TestSectionConfigs:
    """Test follow-up, messaging and logging configuration."""

    def test_followup_defaults(self):
        config = FollowUpConfig()

        assert config.ttl_seconds == 600.0
        assert config.confirmation_types == ("time_confirmation",)

    def test_messaging_defaults(self):
        config = MessagingConfig()

        assert config.enabled is True
        assert config.model == "gpt-4o-mini"
        assert config.ack_max_tokens == 100
        assert config.completion_max_tokens == 150

    def test_messaging_validation(self):
        with pytest.raises(ValueError, match="temperature"):
            MessagingConfig(temperature=3.0)

        with pytest.raises(ValueError, match="max token"):
            MessagingConfig(ack_max_tokens=0)

    def test_logging_validation(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="VERBOSE")

        with pytest.raises(ValueError, match="Invalid log format"):
            LoggingConfig(format="xml")


class TestSettings:
    """Test the master Settings class."""

    def test_default_settings(self):
        settings = Settings()

        assert isinstance(settings.queue, QueueConfig)
        assert isinstance(settings.followup, FollowUpConfig)
        assert isinstance(settings.messaging, MessagingConfig)
        assert isinstance(settings.logging, LoggingConfig)
        assert Settings.default() == settings

    def test_from_env(self, monkeypatch):
        """Test loading from environment variables."""
        monkeypatch.setenv("DISPATCH_QUEUE_AGENTS", "falcon, research ,leadgen")
        monkeypatch.setenv("DISPATCH_QUEUE_RETENTION_LIMIT", "250")
        monkeypatch.setenv("DISPATCH_FOLLOWUP_TTL_SECONDS", "120")
        monkeypatch.setenv("DISPATCH_MESSAGING_ENABLED", "false")
        monkeypatch.setenv("DISPATCH_LOG_LEVEL", "debug")

        settings = Settings.from_env(dotenv=False)

        assert settings.queue.agents == ("falcon", "research", "leadgen")
        assert settings.queue.retention_limit == 250
        assert settings.followup.ttl_seconds == 120.0
        assert settings.messaging.enabled is False
        assert settings.logging.level == "DEBUG"

    def test_from_env_invalid_number(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_QUEUE_RETENTION_LIMIT", "lots")

        with pytest.raises(ConfigError, match="Invalid environment value"):
            Settings.from_env(dotenv=False)

    def test_from_dict(self):
        settings = Settings.from_dict({
            "queue": {"agents": ["falcon"], "retention_limit": 10},
            "messaging": {"platform_name": "Acme"},
        })

        assert settings.queue.agents == ("falcon",)
        assert settings.queue.retention_limit == 10
        assert settings.messaging.platform_name == "Acme"
        assert settings.followup == FollowUpConfig()

    def test_from_dict_schema_violation(self):
        with pytest.raises(ConfigError, match="Configuration validation failed"):
            Settings.from_dict({"queue": {"retention_limit": 0}})

        with pytest.raises(ConfigError):
            Settings.from_dict({"queue": {"unknown_key": True}})

    def test_from_yaml_file(self):
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "dispatch.yaml"
            config_path.write_text(
                "queue:\n"
                "  retention_limit: 20\n"
                "followup:\n"
                "  ttl_seconds: 300\n"
            )

            settings = Settings.from_file(config_path)

        assert settings.queue.retention_limit == 20
        assert settings.followup.ttl_seconds == 300

    def test_from_toml_file(self):
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "dispatch.toml"
            config_path.write_text('[messaging]\nmodel = "gpt-4o"\nenabled = false\n')

            settings = Settings.from_file(config_path)

        assert settings.messaging.model == "gpt-4o"
        assert settings.messaging.enabled is False

    def test_file_errors(self):
        with pytest.raises(FileNotFoundError):
            Settings.from_file("/nonexistent/dispatch.yaml")

        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "dispatch.ini"
            config_path.write_text("[queue]\n")
            with pytest.raises(ConfigError, match="Unsupported config file format"):
                Settings.from_file(config_path)

    def test_to_dict_round_trips_through_schema(self):
        settings = Settings.from_dict({"followup": {"ttl_seconds": 30}})
        data = settings.to_dict()

        assert data["queue"]["agents"] == ["falcon", "sage", "sentinel"]
        assert data["followup"]["ttl_seconds"] == 30
        settings.validate()

    def test_validate_detects_mutation(self):
        settings = Settings()
        settings.queue.retention_limit = 0

        with pytest.raises(ConfigError):
            settings.validate()


class TestGlobalSettings:
    """Test global settings helpers."""

    def test_get_settings(self, monkeypatch):
        monkeypatch.setattr(settings_module, "_global_settings", None)
        monkeypatch.setenv("DISPATCH_QUEUE_RETENTION_LIMIT", "42")

        settings = get_settings()
        assert settings.queue.retention_limit == 42
        assert get_settings() is settings

    def test_configure(self, monkeypatch):
        monkeypatch.setattr(settings_module, "_global_settings", None)
        custom = Settings(queue=QueueConfig(retention_limit=7))

        assert configure(custom) is custom
        assert get_settings() is custom

    def test_load_env_file(self, monkeypatch):
        monkeypatch.delenv("DISPATCH_TEST_VALUE", raising=False)

        with TemporaryDirectory() as tmpdir:
            env_path = Path(tmpdir) / ".env"
            env_path.write_text("DISPATCH_TEST_VALUE=from-dotenv\n")

            assert load_env(str(env_path)) is True
            assert os.environ["DISPATCH_TEST_VALUE"] == "from-dotenv"

    def test_load_env_missing_file(self):
        assert load_env("/nonexistent/path/.env") is False
