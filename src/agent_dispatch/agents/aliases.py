"""
Agent name normalisation.

Queue and channel names are not always the canonical agent identifiers
(``research`` vs ``sage``, ``leadgen`` vs ``falcon``). Every name that
crosses from a queue event into message routing goes through
``canonical_agent_name`` so a naming mismatch degrades to a passthrough
instead of an exception.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

DIRECT_AGENT = "prism"

CANONICAL_AGENTS: tuple[str, ...] = ("falcon", "sage", "sentinel")

AGENT_ALIASES: dict[str, str] = {
    "falcon": "falcon",
    "leadgen": "falcon",
    "lead_generation": "falcon",
    "lead-generation": "falcon",
    "sage": "sage",
    "research": "sage",
    "linkedin_research": "sage",
    "linkedin-research": "sage",
    "sentinel": "sentinel",
    "email": "sentinel",
    "auto_reply": "sentinel",
    "auto-reply": "sentinel",
    "calendar_booking": "sentinel",
    "calendar": "sentinel",
}

# Queue names tried, in order, when a finished job is not found under the
# queue name carried by its event.
FALLBACK_QUEUE_NAMES: tuple[str, ...] = (
    "sage",
    "falcon",
    "sentinel",
    "research",
    "linkedin_research",
    "leadgen",
    "lead_generation",
)

DISPLAY_NAMES: dict[str, str] = {
    "falcon": "Falcon (Lead Generation)",
    "sage": "Sage (Lead Research)",
    "sentinel": "Sentinel (Auto Reply)",
    "prism": "Prism",
}


def canonical_agent_name(name: str | None) -> str:
    """Map a queue/channel name to its canonical agent identifier.

    Unknown names are returned lower-cased and stripped; empty or missing
    names map to ``"unknown"``.
    """
    if not name or not isinstance(name, str):
        logger.warning("Cannot normalise agent name %r", name)
        return "unknown"

    normalized = name.strip().lower()
    canonical = AGENT_ALIASES.get(normalized)
    if canonical is None:
        logger.debug("Unknown queue name %r, passing through as %r", name, normalized)
        return normalized or "unknown"
    return canonical


def display_name(agent_name: str) -> str:
    """Human-facing name of an agent, e.g. ``Falcon (Lead Generation)``."""
    return DISPLAY_NAMES.get(agent_name, agent_name)


def is_canonical_agent(name: str) -> bool:
    return name in CANONICAL_AGENTS


__all__ = [
    "DIRECT_AGENT",
    "CANONICAL_AGENTS",
    "AGENT_ALIASES",
    "FALLBACK_QUEUE_NAMES",
    "DISPLAY_NAMES",
    "canonical_agent_name",
    "display_name",
    "is_canonical_agent",
]
