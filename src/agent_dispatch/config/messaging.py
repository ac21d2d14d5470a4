"""
Message generation configuration.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MessagingConfig:
    """Configuration for Stage-1 / Stage-2 message generation."""

    enabled: bool = True

    # Text generation settings
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    ack_max_tokens: int = 100
    completion_max_tokens: int = 150

    # Platform name used in generation prompts
    platform_name: str = "SharpFlow"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        if self.ack_max_tokens < 1 or self.completion_max_tokens < 1:
            raise ValueError("max token settings must be positive")


__all__ = ["MessagingConfig"]
