"""Article reference model for ingested news items.

This module defines ArticleRef, the immutable view of one ingested item
that the pipeline works from. ArticleRefs are built by the article store
reader from the ingestion JSON files and are never modified afterwards.

Timestamps:
    published_at is always an ISO-8601 UTC string ending in 'Z'. The
    reader guarantees its calendar day, in the configured reference zone,
    matches the day the ref was loaded for.
"""

from pydantic import BaseModel, ConfigDict, Field


class ArticleRef(BaseModel):
    """A news item selected for one day's digest.

    Attributes:
        title: Article headline (may be empty for sloppy feeds)
        url: Link to the article page
        source: Outlet or feed name ('unknown' when the producer omits it)
        published_at: Publication timestamp (ISO-8601, UTC)
        fallback_summary: Feed description used when extraction yields nothing

    Example:
        >>> ref = ArticleRef(
        ...     title="District expands tutoring",
        ...     url="https://example.com/a",
        ...     source="EdWeek",
        ...     published_at="2024-01-01T15:00:00.000Z",
        ... )
        >>> ref.model_dump(by_alias=True)["publishedAt"]
        '2024-01-01T15:00:00.000Z'
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(default="", description="Article headline")
    url: str = Field(default="", description="Article page URL")
    source: str = Field(default="unknown", description="Outlet or feed name")
    published_at: str = Field(alias="publishedAt", description="Publication time (ISO-8601 UTC)")
    fallback_summary: str = Field(
        default="",
        alias="fallbackSummary",
        description="Feed-provided description or summary",
    )

    @property
    def best_local_text(self) -> str:
        """Text to summarize when the article page cannot be extracted."""
        return self.fallback_summary or self.title

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        return f"ArticleRef('{self.title[:50]}', {self.source})"
