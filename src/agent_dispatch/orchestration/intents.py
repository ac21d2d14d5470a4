"""
Keyword-based intent classification.

This module provides:
- IntentRule: keyword/pattern rule mapping a message to an agent
- KeywordIntentClassifier: rule-based IntentClassifier used when no
  LLM-backed classifier is configured
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable

from ..agents.aliases import DIRECT_AGENT
from .types import Intent, IntentResult

LINKEDIN_URL_PATTERN = re.compile(r"https?://(?:[\w-]+\.)?linkedin\.com/in/[^\s,)]+", re.IGNORECASE)

# Intent type for a matched request that lacks a required parameter
MISSING_DETAILS = "missing_details"


@dataclass
class IntentRule:
    """A rule routing a message to an agent.

    Rules are evaluated in priority order; first match wins.

    Attributes:
        intent_type: Intent (and job) type produced by this rule
        agent_name: Target agent
        keywords: Substrings to match (case-insensitive)
        patterns: Regex patterns to match
        priority: Rule priority (higher = evaluated first)
        extract: Optional parameter extractor for matched messages
        required: Parameters the job cannot start without
        clarification: Reply sent instead of delegating when a required
            parameter is missing
    """
    intent_type: str
    agent_name: str
    keywords: list[str] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    priority: int = 0
    extract: Callable[[str], dict[str, Any]] | None = None
    required: list[str] = field(default_factory=list)
    clarification: str | None = None

    def matches(self, message: str) -> tuple[bool, float]:
        """Check if this rule matches a message.

        Returns:
            Tuple of (matches, confidence)
        """
        lowered = message.lower()
        hits = sum(1 for kw in self.keywords if kw.lower() in lowered)
        hits += sum(1 for p in self.patterns if re.search(p, message, re.IGNORECASE))
        if not hits:
            return False, 0.0
        return True, min(1.0, 0.6 + 0.1 * hits)

    def parameters(self, message: str) -> dict[str, Any]:
        params: dict[str, Any] = {"originalMessage": message}
        if self.extract is not None:
            params.update(self.extract(message))
        return params

    def missing(self, params: dict[str, Any]) -> list[str]:
        return [name for name in self.required if not params.get(name)]


def extract_linkedin_url(message: str) -> dict[str, Any]:
    match = LINKEDIN_URL_PATTERN.search(message)
    return {"linkedinUrl": match.group(0)} if match else {}


def default_rules() -> list[IntentRule]:
    return [
        IntentRule(
            intent_type="lead_generation",
            agent_name="falcon",
            keywords=["find", "generate", "scrape", "apollo"],
            priority=30,
        ),
        IntentRule(
            intent_type="lead_research",
            agent_name="sage",
            keywords=["research", "linkedin", "analyze"],
            priority=20,
            extract=extract_linkedin_url,
            required=["linkedinUrl"],
            clarification=(
                "Sage (Lead Research) needs a LinkedIn profile URL to research a lead. "
                "Please include one, for example https://www.linkedin.com/in/jane-doe."
            ),
        ),
        IntentRule(
            intent_type="sentinel_request",
            agent_name="sentinel",
            keywords=[
                "email", "gmail", "inbox", "mail",
                "calendar", "schedule", "meeting", "appointment",
                "remind", "automate", "automation", "monitor", "workflow",
            ],
            priority=10,
        ),
    ]


DEFAULT_RESPONSE = (
    "I'm Prism, your assistant. I can find leads with Falcon, research "
    "LinkedIn profiles with Sage, or handle email, calendar and reminders "
    "with Sentinel. What would you like to do?"
)


class KeywordIntentClassifier:
    """Rule-based intent classifier.

    Messages matching no rule are handled by Prism directly.

    Example:
        ```python
        classifier = KeywordIntentClassifier()
        result = await classifier.process_message(
            "find leads in Austin for SaaS companies", "user-1", "session-1"
        )
        # result.intent.required_agent == "falcon"
        ```
    """

    def __init__(
        self,
        rules: list[IntentRule] | None = None,
        default_response: str = DEFAULT_RESPONSE,
    ):
        self._rules = sorted(
            rules if rules is not None else default_rules(),
            key=lambda r: r.priority,
            reverse=True,
        )
        self.default_response = default_response

    def add_rule(self, rule: IntentRule) -> None:
        """Add a routing rule."""
        self._rules.append(rule)
        self._rules.sort(key=lambda r: r.priority, reverse=True)

    def classify(self, message: str) -> Intent:
        for rule in self._rules:
            matched, confidence = rule.matches(message)
            if not matched:
                continue
            params = rule.parameters(message)
            missing = rule.missing(params)
            if missing:
                return Intent(
                    type=MISSING_DETAILS,
                    required_agent=DIRECT_AGENT,
                    confidence=confidence,
                    parameters={
                        **params,
                        "suggestedAgent": rule.agent_name,
                        "missing": missing,
                        "clarification": rule.clarification,
                    },
                )
            return Intent(
                type=rule.intent_type,
                required_agent=rule.agent_name,
                confidence=confidence,
                parameters=params,
            )
        return Intent(type="general_query", required_agent=DIRECT_AGENT, confidence=0.5)

    async def process_message(self, text: str, user_id: str, session_id: str) -> IntentResult:
        intent = self.classify(text)
        response = intent.parameters.get("clarification") if intent.type == MISSING_DETAILS else None
        return IntentResult(intent=intent, response=response, extracted_entities=dict(intent.parameters))

    async def generate_response(self, intent: Intent, context: dict[str, Any]) -> str:
        if intent.type == MISSING_DETAILS and intent.parameters.get("clarification"):
            return intent.parameters["clarification"]
        return self.default_response


__all__ = [
    "IntentRule",
    "KeywordIntentClassifier",
    "default_rules",
    "extract_linkedin_url",
    "LINKEDIN_URL_PATTERN",
    "DEFAULT_RESPONSE",
    "MISSING_DETAILS",
]
