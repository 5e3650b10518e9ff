"""Summarizer agent for per-article summaries.

This module turns one article's text into an ArticleSummary by prompting
the generation service for strict JSON.

Failure Policy:
    Never raises. When the service is unreachable or times out, the
    result is a placeholder summary carrying the article metadata. When
    the response does not parse as a JSON object, the raw response text
    (truncated) becomes the summary. Bullets and tags are empty in both
    degraded forms.
"""

import logging
from typing import Any

from agents.client import GenerationClient, GenerationError, parse_json_object
from config import Config
from models.article import ArticleRef
from models.digest import ArticleSummary

logger = logging.getLogger(__name__)

# Raw-text summaries are cut to this many characters
MAX_RAW_SUMMARY_CHARS = 800

UNREACHABLE_SUMMARY = "Generation service is not reachable right now. Placeholder summary."

ARTICLE_PROMPT = """You are a concise {topic}-news summarizer.
Return STRICT JSON with keys: title, source, url, date, summary, bullets, tags.
Rules:
- summary: <= 120 words
- bullets: 3-5 short lines
- tags: 3-6 lowercase slugs (e.g., "literacy", "policy", "higher-ed")
- Focus on findings, impact, equity, and stakeholders.

TITLE: {title}
SOURCE: {source}
URL: {url}
DATE: {date}

ARTICLE:
{text}"""


def build_article_prompt(text: str, meta: ArticleRef, topic: str, max_chars: int) -> str:
    """Render the per-article instruction, truncating the article body."""
    return ARTICLE_PROMPT.format(
        topic=topic,
        title=meta.title,
        source=meta.source,
        url=meta.url,
        date=meta.published_at,
        text=(text or "")[:max_chars],
    ).strip()


def degraded_article_summary(meta: ArticleRef, raw: str | None = None) -> ArticleSummary:
    """Build the non-generated fallback for one article.

    Args:
        meta: Article metadata to carry through
        raw: Text to keep as the summary (unparseable response or the
            article's local text), or None when the service was unreachable

    Returns:
        ArticleSummary with empty bullets and tags
    """
    if raw is None:
        summary = UNREACHABLE_SUMMARY
    else:
        summary = raw.strip()[:MAX_RAW_SUMMARY_CHARS]
    return ArticleSummary(
        title=meta.title,
        source=meta.source,
        url=meta.url,
        published_at=meta.published_at,
        summary=summary,
    )


def merge_article_result(meta: ArticleRef, data: dict[str, Any]) -> ArticleSummary:
    """Combine parsed model output with the known article metadata.

    url, date and source always come from the ArticleRef; the title does
    unless it is empty. Wrongly-typed fields fall back to empty values.
    """
    summary = data.get("summary")
    return ArticleSummary(
        title=meta.title or data.get("title"),
        source=meta.source or data.get("source"),
        url=meta.url,
        published_at=meta.published_at,
        summary=summary if isinstance(summary, str) else "",
        bullets=data.get("bullets"),
        tags=data.get("tags"),
    )


class SummarizerAgent:
    """Generates one ArticleSummary per article."""

    def __init__(self, config: Config, client: GenerationClient):
        """Initialize the summarizer agent.

        Args:
            config: Application configuration (topic, truncation)
            client: Shared generation client
        """
        self.config = config
        self.client = client

    async def summarize_article(self, text: str, meta: ArticleRef) -> ArticleSummary:
        """Summarize one article.

        Args:
            text: Extracted article text (or local fallback text)
            meta: Article metadata

        Returns:
            Generated or degraded ArticleSummary
        """
        prompt = build_article_prompt(text, meta, self.config.topic, self.config.max_article_chars)
        try:
            raw = await self.client.generate(prompt, temperature=0.3)
        except GenerationError as e:
            logger.warning("Summary unavailable | title=%s error=%s", meta.title[:50], e)
            return degraded_article_summary(meta)

        data = parse_json_object(raw)
        if data is None:
            logger.info("Summary unparseable, using raw text | title=%s chars=%d", meta.title[:50], len(raw))
            return degraded_article_summary(meta, raw)

        result = merge_article_result(meta, data)
        logger.debug(
            "Article summarized | title=%s bullets=%d tags=%d",
            meta.title[:50], len(result.bullets), len(result.tags),
        )
        return result
