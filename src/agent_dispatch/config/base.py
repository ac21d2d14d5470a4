"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]

DEFAULT_AGENTS: tuple[str, ...] = ("falcon", "sage", "sentinel")


__all__ = ["LogLevel", "LogFormat", "DEFAULT_AGENTS"]
