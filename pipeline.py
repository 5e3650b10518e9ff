"""Digest pipeline orchestration.

This module coordinates serving and building the daily digest:

Pipeline Flow:
    1. CACHE: Serve a valid cached record for the date (unless rebuilding)
    2. UPGRADE: Records without an overview get one, persisted in place
    3. PROBE: Check the generation service before any extraction work
    4. LOAD: Read the day's articles from the ingestion files
    5. POOL: Extract + summarize articles with bounded concurrency
    6. OVERVIEW: Build the daily overview from all summaries
    7. WRITE: Atomically persist the complete digest

Concurrency:
    Requests for the same date are serialized by a per-date lock. A
    request that waited while another one completed a build serves that
    result rather than building again, even when it asked to rebuild.
    Different dates proceed independently.
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass, asdict, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Sequence, TypeVar
from zoneinfo import ZoneInfo

from agents.client import GenerationClient
from agents.overview import OverviewAgent
from agents.summarizer import SummarizerAgent, degraded_article_summary
from articles import load_articles_for
from cache import DigestCache
from config import Config
from models.article import ArticleRef
from models.digest import ArticleSummary, DailyDigest
from observability.logging import set_build_context
from tools.fetch import fetch_article_text

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

_YMD = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ServiceUnavailableError(Exception):
    """Raised when the generation service is down and no cache can substitute."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidDateError(ValueError):
    """Raised for a date parameter that is neither YYYY-MM-DD nor 'today'."""
    pass


def today_ymd(tz: ZoneInfo) -> str:
    """Today's date in the reference zone as YYYY-MM-DD."""
    return datetime.now(tz).strftime("%Y-%m-%d")


def resolve_date(value: str, tz: ZoneInfo) -> str:
    """Resolve a date parameter to a YYYY-MM-DD key.

    Args:
        value: 'today' or a YYYY-MM-DD string
        tz: Reference zone used for 'today'

    Raises:
        InvalidDateError: If the value is not a real calendar date
    """
    if value == "today":
        return today_ymd(tz)
    if not _YMD.match(value or ""):
        raise InvalidDateError(f"Invalid date '{value}' - expected YYYY-MM-DD or 'today'")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise InvalidDateError(f"Invalid date '{value}' - not a calendar date")
    return value


async def map_pool(
    items: Sequence[T],
    limit: int,
    fn: Callable[[T, int], Awaitable[R]],
    fallback: Callable[[T, BaseException], R] | None = None,
) -> list[R]:
    """Run fn over items with at most `limit` running concurrently.

    Results are positional: result[i] belongs to items[i] whatever order
    the calls complete in. A call that raises is replaced by
    fallback(item, error) so sibling calls are never aborted.

    Args:
        items: Inputs
        limit: Maximum concurrent calls
        fn: Coroutine function taking (item, index)
        fallback: Value factory for failed calls; without one, the first
                  failure is re-raised after all calls settle

    Returns:
        Results in input order
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def run_one(index: int, item: T) -> R:
        async with semaphore:
            return await fn(item, index)

    settled = await asyncio.gather(
        *(run_one(i, item) for i, item in enumerate(items)),
        return_exceptions=True,
    )

    results: list[R] = []
    for i, outcome in enumerate(settled):
        # Cancellation and interpreter exits are not task failures
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, Exception):
            if fallback is None:
                raise outcome
            logger.error("Pool task failed | index=%d error=%s", i, outcome, exc_info=outcome)
            results.append(fallback(items[i], outcome))
        else:
            results.append(outcome)
    return results


@dataclass
class BuildStats:
    """Counts from a single digest build.

    Attributes:
        date: Digest date
        articles: Articles loaded for the date
        extracted: Articles whose page text was extracted
        failed: Pool tasks that raised and were replaced by fallbacks
        duration: Total build time in seconds
    """

    date: str = ""
    articles: int = 0
    extracted: int = 0
    failed: int = 0
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


@dataclass
class _DateSlot:
    """Per-date lock and build counter, dropped once no request holds it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    builds: int = 0  # Completed builds
    users: int = 0  # Requests holding or waiting on the lock


TextFetcher = Callable[[str, float], Awaitable[str]]


class DigestPipeline:
    """Serves daily digests from cache and builds them on demand.

    Components:
        - DigestCache: per-date JSON files
        - GenerationClient: reachability probe + generation
        - SummarizerAgent / OverviewAgent: per-article and daily generation
        - fetch_text: page fetch + main-text extraction

    Example:
        >>> pipeline = DigestPipeline(Config.load())
        >>> record = await pipeline.get_digest("2024-01-01")
        >>> await pipeline.close()
    """

    def __init__(
        self,
        config: Config,
        client: GenerationClient | None = None,
        cache: DigestCache | None = None,
        fetch_text: TextFetcher | None = None,
    ):
        """Initialize pipeline with all components.

        Args:
            config: Application configuration
            client: Generation client (default: built from config)
            cache: Digest cache (default: config.summaries_dir)
            fetch_text: Page text fetcher (default: fetch_article_text)
        """
        self.config = config
        self.tz = ZoneInfo(config.tz_name)
        self.client = client or GenerationClient(config)
        self.cache = cache or DigestCache(config.summaries_dir)
        self.summarizer = SummarizerAgent(config, self.client)
        self.overview = OverviewAgent(config, self.client)
        self._fetch_text = fetch_text or fetch_article_text
        self._slots: dict[str, _DateSlot] = {}

    def unavailable_message(self) -> str:
        return (
            f"Cannot reach generation service at {self.config.ollama_url}. "
            "Start it with 'ollama serve' (or set OLLAMA_URL)."
        )

    async def get_digest(self, day: str, rebuild: bool = False) -> dict[str, Any]:
        """Return the digest record for a date, building it if needed.

        Args:
            day: Date key (YYYY-MM-DD)
            rebuild: Ignore any cached record and run the full pipeline

        Returns:
            The digest record as served and stored

        Raises:
            ServiceUnavailableError: Service unreachable and no valid cache
        """
        set_build_context(day)
        slot = self._slots.setdefault(day, _DateSlot())
        slot.users += 1
        builds_seen = slot.builds
        try:
            async with slot.lock:
                if rebuild and slot.builds > builds_seen:
                    logger.info("Rebuild satisfied by concurrent build | day=%s", day)
                    rebuild = False

                if not rebuild:
                    cached = self.cache.read(day)
                    if cached is not None:
                        if not cached.get("overview"):
                            return await self._upgrade(day, cached)
                        logger.info("Cache hit | day=%s items=%d", day, len(cached["items"]))
                        return cached

                if not await self.client.is_reachable():
                    cached = self.cache.read(day)
                    if cached is not None:
                        logger.warning("Service unreachable, serving existing cache | day=%s", day)
                        return cached
                    logger.warning("Service unreachable, no cache | day=%s url=%s", day, self.config.ollama_url)
                    raise ServiceUnavailableError(self.unavailable_message())

                digest, _ = await self.build(day)
                record = digest.to_record()
                self.cache.write(day, record)
                slot.builds += 1
                return record
        finally:
            slot.users -= 1
            if slot.users == 0:
                self._slots.pop(day, None)

    async def _upgrade(self, day: str, cached: dict[str, Any]) -> dict[str, Any]:
        """Add an overview to a pre-overview record and persist it in place."""
        items = [ArticleSummary.from_cached(item) for item in cached["items"]]
        overview = await self.overview.build_daily_overview(day, items)
        upgraded = {**cached, "overview": overview.model_dump(mode="json")}
        upgraded.setdefault("date", day)
        self.cache.write(day, upgraded)
        logger.info("Cache upgraded with overview | day=%s items=%d", day, len(items))
        return upgraded

    async def _summarize(self, article: ArticleRef, stats: BuildStats) -> ArticleSummary:
        """Extract one article's text and summarize it."""
        text = await self._fetch_text(article.url, self.config.http_timeout)
        if text:
            stats.extracted += 1
        else:
            logger.debug("No page text, using local text | title=%s", article.title[:50])
        return await self.summarizer.summarize_article(text or article.best_local_text, article)

    async def build(self, day: str) -> tuple[DailyDigest, BuildStats]:
        """Run the full pipeline for a date without touching the cache.

        Args:
            day: Date key (YYYY-MM-DD)

        Returns:
            Tuple of (digest, build statistics)
        """
        start = time.time()
        stats = BuildStats(date=day)

        articles = load_articles_for(
            date.fromisoformat(day),
            self.config.feed_files,
            self.tz,
            strict=self.config.strict_sources,
        )
        stats.articles = len(articles)
        logger.info("Build started | day=%s articles=%d parallel=%d", day, len(articles), self.config.parallel)

        def on_failure(article: ArticleRef, error: BaseException) -> ArticleSummary:
            stats.failed += 1
            return degraded_article_summary(article, article.best_local_text)

        items = await map_pool(
            articles,
            self.config.parallel,
            lambda article, _: self._summarize(article, stats),
            fallback=on_failure,
        )
        overview = await self.overview.build_daily_overview(day, items)

        stats.duration = time.time() - start
        logger.info(
            "Build done | day=%s articles=%d extracted=%d failed=%d duration=%.1fs",
            day, stats.articles, stats.extracted, stats.failed, stats.duration,
        )
        return DailyDigest(date=day, overview=overview, items=items), stats

    async def close(self) -> None:
        """Clean up resources."""
        await self.client.close()
