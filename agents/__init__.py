"""Generation-service agents for the daily digest.

GenerationClient:
    Async client for the Ollama service (probe + raw generation).

SummarizerAgent:
    Per-article summaries with deterministic degraded results.

OverviewAgent:
    The grand daily summary built from all article summaries.

Example:
    >>> from agents import GenerationClient, SummarizerAgent, OverviewAgent
    >>> client = GenerationClient(config)
    >>> summarizer = SummarizerAgent(config, client)
    >>> overview = OverviewAgent(config, client)
"""

from agents.client import GenerationClient, GenerationError, parse_json_object
from agents.overview import OverviewAgent
from agents.summarizer import SummarizerAgent

__all__ = [
    "GenerationClient",
    "GenerationError",
    "parse_json_object",
    "SummarizerAgent",
    "OverviewAgent",
]
