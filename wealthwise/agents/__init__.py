"""AI Agents package."""

from wealthwise.agents.ai_agents import (
    ADVISOR_FALLBACK,
    DEFAULT_ICONS,
    AdvisorAgent,
    MarketDataAgent,
)

__all__ = [
    "ADVISOR_FALLBACK",
    "AdvisorAgent",
    "DEFAULT_ICONS",
    "MarketDataAgent",
]
