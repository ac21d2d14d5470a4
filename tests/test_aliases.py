"""
Tests for agent name normalisation.
"""

import pytest

from agent_dispatch.agents import canonical_agent_name, display_name
from agent_dispatch.agents.aliases import FALLBACK_QUEUE_NAMES, is_canonical_agent


class TestCanonicalAgentName:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("falcon", "falcon"),
            ("leadgen", "falcon"),
            ("lead-generation", "falcon"),
            ("research", "sage"),
            ("linkedin_research", "sage"),
            ("auto_reply", "sentinel"),
            ("calendar_booking", "sentinel"),
            ("  Sage ", "sage"),
            ("EMAIL", "sentinel"),
        ],
    )
    def test_known_aliases(self, name, expected):
        assert canonical_agent_name(name) == expected

    def test_unknown_name_passes_through(self):
        assert canonical_agent_name(" Oracle ") == "oracle"

    @pytest.mark.parametrize("name", [None, "", "   ", 42])
    def test_missing_name(self, name):
        assert canonical_agent_name(name) == "unknown"


class TestDisplayName:
    def test_known_agents(self):
        assert display_name("falcon") == "Falcon (Lead Generation)"
        assert display_name("sage") == "Sage (Lead Research)"
        assert display_name("sentinel") == "Sentinel (Auto Reply)"

    def test_unknown_agent(self):
        assert display_name("oracle") == "oracle"


def test_canonical_agents():
    assert is_canonical_agent("falcon")
    assert not is_canonical_agent("research")
    assert not is_canonical_agent("prism")


def test_fallback_queue_order():
    assert FALLBACK_QUEUE_NAMES[:3] == ("sage", "falcon", "sentinel")
