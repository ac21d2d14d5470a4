"""
Configuration system for agent-dispatch.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable and .env loading
- JSON-schema validation of dictionary input
"""

from .base import DEFAULT_AGENTS, LogFormat, LogLevel
from .logging import LoggingConfig
from .messaging import MessagingConfig
from .queue import MAX_DRAIN_DELAY, FollowUpConfig, QueueConfig
from .settings import Settings, configure, get_settings, load_env

__all__ = [
    # Types
    "LogLevel",
    "LogFormat",
    "DEFAULT_AGENTS",
    # Section configs
    "QueueConfig",
    "FollowUpConfig",
    "MessagingConfig",
    "LoggingConfig",
    "MAX_DRAIN_DELAY",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "load_env",
]
