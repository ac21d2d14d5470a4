"""
Registry of agent executors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from .adapter import AgentAdapter
from .base import AgentExecutor
from .messages import LLMMessageComposer

logger = logging.getLogger(__name__)


def agent_key(name: str | None) -> str:
    """Registry key for an agent name: stripped and lower-cased."""
    return name.strip().lower() if name else ""


class AgentRegistry:
    """Registry mapping agent (queue) names to executor adapters.

    A composer given to the registry is used for every agent registered
    without its own.

    Example:
        ```python
        registry = AgentRegistry(composer=LLMMessageComposer())
        registry.register("falcon", FalconAgent())
        registry.register("sage", SageAgent(), display_name="Sage (Lead Research)")
        ```
    """

    def __init__(self, composer: LLMMessageComposer | None = None):
        self._adapters: dict[str, AgentAdapter] = {}
        self.composer = composer

    def register(
        self,
        name: str,
        executor: AgentExecutor,
        *,
        composer: LLMMessageComposer | None = None,
        display_name: str | None = None,
    ) -> AgentAdapter:
        """Register an executor under an agent name.

        Raises:
            ValueError: If the name is empty or already registered
        """
        key = agent_key(name)
        if not key:
            raise ValueError("Agent name must not be empty")
        if key in self._adapters:
            raise ValueError(f"Agent '{key}' is already registered")

        adapter = AgentAdapter(
            key,
            executor,
            composer=composer or self.composer,
            display_name=display_name,
        )
        self._adapters[key] = adapter
        logger.info("Registered agent: %s (%s)", key, type(executor).__name__)
        return adapter

    def unregister(self, name: str) -> bool:
        """Unregister an agent.

        Returns:
            True if the agent was unregistered, False if not found
        """
        key = agent_key(name)
        adapter = self._adapters.pop(key, None)
        if adapter is None:
            return False
        logger.info("Unregistered agent: %s", key)
        return True

    def get(self, name: str) -> AgentAdapter | None:
        return self._adapters.get(agent_key(name))

    def names(self) -> list[str]:
        return list(self._adapters)

    def adapters(self) -> list[AgentAdapter]:
        return list(self._adapters.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and agent_key(name) in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    def __iter__(self) -> Iterator[AgentAdapter]:
        return iter(list(self._adapters.values()))


__all__ = ["AgentRegistry", "agent_key"]
