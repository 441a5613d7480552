"""Agent implementations and base classes"""

from .base import BaseAgent, AgentConfig, AgentResult
from .insights import InsightsAgent, InsightsFetcher, InsightsParseError, create_insights_agent, parse_insights

__all__ = [
    "BaseAgent",
    "AgentConfig",
    "AgentResult",
    "InsightsAgent",
    "InsightsFetcher",
    "InsightsParseError",
    "create_insights_agent",
    "parse_insights",
]
