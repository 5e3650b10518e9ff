"""Overview agent for the grand daily summary.

Builds one DailyOverview from all of a day's ArticleSummary objects via a
second generation call. The prompt carries a compacted projection of each
summary to bound its size.

Fallbacks:
    - No summaries: fixed "No articles found" overview, no service call
    - Service unreachable: headline/summary stitched from titles and sources
    - Unparseable response: fixed headline, raw text as summary
"""

import json
import logging
from typing import Any

from agents.client import GenerationClient, GenerationError, parse_json_object
from config import Config
from models.digest import ArticleSummary, DailyOverview, slugify

logger = logging.getLogger(__name__)

# Compaction limits per article
MAX_COMPACT_TAGS = 6
MAX_COMPACT_SUMMARY_CHARS = 300

# Fallback synthesis limits
FALLBACK_SUMMARY_ITEMS = 6
FALLBACK_BULLET_ITEMS = 7
MAX_RAW_OVERVIEW_CHARS = 1200

OVERVIEW_PROMPT = """You are an editor summarizing a single day of {topic} news.
Write a GRAND DAILY SUMMARY in STRICT JSON with keys:
headline (<= 12 words), summary (150-220 words), bullets (5-7 short points), tags (5-10 lowercase slugs).
Emphasize: what's new, policy/regulatory shifts, equity/impact, notable data points, geography.
Avoid repetition; be specific and concrete.

INPUT:
{payload}"""


def default_headline(topic: str) -> str:
    """Headline used whenever the model does not supply one."""
    return f"Daily {topic.strip().title()} Brief"


def fallback_tags(topic: str) -> list[str]:
    """Generic tags attached to synthesized overviews."""
    return list(dict.fromkeys(["daily-brief", slugify(topic) or "news", "policy", "k-12", "higher-ed"]))


def compact_summaries(summaries: list[ArticleSummary]) -> list[dict[str, Any]]:
    """Project summaries down to what the overview prompt needs."""
    return [
        {
            "title": s.title,
            "source": s.source,
            "url": s.url,
            "tags": s.tags[:MAX_COMPACT_TAGS],
            "summary": s.summary[:MAX_COMPACT_SUMMARY_CHARS],
        }
        for s in summaries
    ]


def build_overview_prompt(compact: list[dict[str, Any]], topic: str) -> str:
    return OVERVIEW_PROMPT.format(
        topic=topic,
        payload=json.dumps(compact, indent=2, ensure_ascii=False),
    ).strip()


def empty_overview(day: str) -> DailyOverview:
    """Overview for a day without articles."""
    return DailyOverview(headline=f"No articles found for {day}")


def fallback_overview(day: str, compact: list[dict[str, Any]], topic: str) -> DailyOverview:
    """Synthesize an overview from titles and sources alone (no generation)."""
    highlights = " | ".join(
        f"{a['title']} - {a['source']}" for a in compact[:FALLBACK_SUMMARY_ITEMS]
    )
    return DailyOverview(
        headline=default_headline(topic),
        summary=f"Highlights for {day}: {highlights}",
        bullets=[f"{a['source']}: {a['title']}" for a in compact[:FALLBACK_BULLET_ITEMS]],
        tags=fallback_tags(topic),
    )


def degraded_overview(raw: str, topic: str) -> DailyOverview:
    """Overview for a response that did not parse as JSON."""
    return DailyOverview(
        headline=default_headline(topic),
        summary=raw.strip()[:MAX_RAW_OVERVIEW_CHARS],
    )


def merge_overview_result(data: dict[str, Any], topic: str) -> DailyOverview:
    """Validate parsed model output into a DailyOverview."""
    summary = data.get("summary")
    headline = data.get("headline")
    return DailyOverview(
        headline=headline if isinstance(headline, str) and headline.strip() else default_headline(topic),
        summary=summary if isinstance(summary, str) else "",
        bullets=data.get("bullets"),
        tags=data.get("tags"),
    )


class OverviewAgent:
    """Produces the DailyOverview for a date."""

    def __init__(self, config: Config, client: GenerationClient):
        """Initialize the overview agent.

        Args:
            config: Application configuration (topic)
            client: Shared generation client
        """
        self.config = config
        self.client = client

    async def build_overview(self, day: str, summaries: list[ArticleSummary]) -> DailyOverview:
        """Ask the service for a daily overview; degrade on any failure.

        Args:
            day: Date string (YYYY-MM-DD)
            summaries: The day's article summaries (non-empty)

        Returns:
            Generated, synthesized, or degraded DailyOverview
        """
        topic = self.config.topic
        compact = compact_summaries(summaries)
        prompt = build_overview_prompt(compact, topic)
        try:
            raw = await self.client.generate(prompt, temperature=0.2)
        except GenerationError as e:
            logger.warning("Overview unavailable, synthesizing | day=%s error=%s", day, e)
            return fallback_overview(day, compact, topic)

        data = parse_json_object(raw)
        if data is None:
            logger.info("Overview unparseable, using raw text | day=%s chars=%d", day, len(raw))
            return degraded_overview(raw, topic)

        overview = merge_overview_result(data, topic)
        logger.info("Overview generated | day=%s bullets=%d tags=%d", day, len(overview.bullets), len(overview.tags))
        return overview

    async def build_daily_overview(self, day: str, summaries: list[ArticleSummary]) -> DailyOverview:
        """Build the overview, skipping generation entirely for empty days."""
        if not summaries:
            logger.info("No articles, skipping overview generation | day=%s", day)
            return empty_overview(day)
        return await self.build_overview(day, summaries)
