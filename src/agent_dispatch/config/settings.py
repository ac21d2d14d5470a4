"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import dataclasses
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import ConfigError
from .logging import LoggingConfig
from .messaging import MessagingConfig
from .queue import FollowUpConfig, QueueConfig


@dataclass
class Settings:
    """
    Master configuration for the dispatcher.

    Aggregates all configuration sections into a single object that can be
    loaded from environment variables, a dictionary, or constructed
    programmatically.
    """

    queue: QueueConfig = field(default_factory=QueueConfig)
    followup: FollowUpConfig = field(default_factory=FollowUpConfig)
    messaging: MessagingConfig = field(default_factory=MessagingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, prefix: str = "DISPATCH_", *, dotenv: bool = True) -> Settings:
        """
        Load settings from environment variables.

        A ``.env`` file found from the working directory is loaded first
        (existing variables win).

        Example:
            DISPATCH_QUEUE_AGENTS=falcon,sage,sentinel
            DISPATCH_QUEUE_RETENTION_LIMIT=200
            DISPATCH_FOLLOWUP_TTL_SECONDS=600
            DISPATCH_LOG_LEVEL=DEBUG
        """
        if dotenv:
            load_env()

        data: dict[str, dict[str, Any]] = {}

        def put(section: str, key: str, value: Any) -> None:
            data.setdefault(section, {})[key] = value

        try:
            if agents := os.getenv(f"{prefix}QUEUE_AGENTS"):
                put("queue", "agents", [a.strip() for a in agents.split(",") if a.strip()])
            if limit := os.getenv(f"{prefix}QUEUE_RETENTION_LIMIT"):
                put("queue", "retention_limit", int(limit))
            if delay := os.getenv(f"{prefix}QUEUE_DRAIN_DELAY"):
                put("queue", "drain_delay", float(delay))

            if ttl := os.getenv(f"{prefix}FOLLOWUP_TTL_SECONDS"):
                put("followup", "ttl_seconds", float(ttl))

            if enabled := os.getenv(f"{prefix}MESSAGING_ENABLED"):
                put("messaging", "enabled", enabled.lower() == "true")
            if model := os.getenv(f"{prefix}MESSAGING_MODEL"):
                put("messaging", "model", model)
            if temperature := os.getenv(f"{prefix}MESSAGING_TEMPERATURE"):
                put("messaging", "temperature", float(temperature))
        except ValueError as exc:
            raise ConfigError(f"Invalid environment value: {exc}", cause=exc) from exc

        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            put("logging", "level", level.upper())
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            put("logging", "format", log_format.lower())

        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ConfigError(f"Unsupported config file format: {suffix}")

        return cls.from_dict(data)

    @classmethod
    def default(cls) -> Settings:
        """Create default configuration."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema before
        the Settings object is built.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        sections = {
            "queue": QueueConfig,
            "followup": FollowUpConfig,
            "messaging": MessagingConfig,
            "logging": LoggingConfig,
        }
        kwargs: dict[str, Any] = {}
        for name, section_cls in sections.items():
            if name in data:
                try:
                    kwargs[name] = section_cls(**data[name])
                except (TypeError, ValueError) as e:
                    raise ConfigError(f"Invalid {name} configuration: {e}", cause=e) from e

        return cls(**kwargs)

    def validate(self) -> None:
        """Re-validate the current values against the configuration schema."""
        try:
            jsonschema.validate(instance=self.to_dict(), schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""

        def convert(obj):
            if isinstance(obj, tuple):
                return [convert(v) for v in obj]
            if isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            return obj

        return {k: convert(v) for k, v in dataclasses.asdict(self).items()}


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating from the environment if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None) -> Settings:
    """Replace the global settings instance."""
    global _global_settings
    _global_settings = settings or Settings.from_env()
    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]
