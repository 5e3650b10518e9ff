"""Digest models: per-article summaries, the daily overview, and the cache record.

Model Hierarchy:
    ArticleSummary: One generated (or degraded) summary per ArticleRef
    DailyOverview: The single "grand daily summary" built from all summaries
    DailyDigest: The persisted unit, keyed by date

All three tolerate loosely-shaped input, since they are built both from
generation-service output and from cache files written by older versions.
"""

import re

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def coerce_text(value) -> str:
    """Coerce a loosely-typed value to a stripped string ('' for None)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def coerce_lines(value) -> list[str]:
    """Coerce a value into a list of non-empty strings.

    Anything other than a list (a bare string, a dict, None) yields [].
    """
    if not isinstance(value, list):
        return []
    lines = []
    for item in value:
        text = coerce_text(item)
        if text:
            lines.append(text)
    return lines


def slugify(value: str) -> str:
    """Lowercase slug: 'Higher Ed' -> 'higher-ed'."""
    return _SLUG_INVALID.sub("-", value.lower()).strip("-")


def slugify_tags(value) -> list[str]:
    """Normalize tags to unique lowercase slugs, preserving first-seen order."""
    tags = [slugify(tag) for tag in coerce_lines(value)]
    return list(dict.fromkeys(tag for tag in tags if tag))


class ArticleSummary(BaseModel):
    """Summary of a single article, as served and cached.

    Attributes:
        title: Article headline
        source: Outlet name
        url: Article URL
        published_at: Publication time, serialized as 'publishedAt'
        summary: Bounded prose summary (may be a placeholder when degraded)
        bullets: Ordered key points
        tags: Lowercase topic slugs
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(default="", description="Article headline")
    source: str = Field(default="", description="Outlet name")
    url: str = Field(default="", description="Article URL")
    published_at: str = Field(
        default="",
        alias="publishedAt",
        validation_alias=AliasChoices("publishedAt", "published_at", "date"),
        description="Publication time (ISO-8601 UTC)",
    )
    summary: str = Field(default="", description="Summary text (<= 120 words)")
    bullets: list[str] = Field(default_factory=list, description="3-5 short key points")
    tags: list[str] = Field(default_factory=list, description="3-6 lowercase slugs")

    @field_validator("title", "source", "url", "published_at", "summary", mode="before")
    @classmethod
    def _text(cls, value):
        return coerce_text(value)

    @field_validator("bullets", mode="before")
    @classmethod
    def _bullets(cls, value):
        return coerce_lines(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value):
        return slugify_tags(value)

    @classmethod
    def from_cached(cls, item) -> "ArticleSummary":
        """Rebuild a summary from a cache item, tolerating foreign shapes."""
        if not isinstance(item, dict):
            return cls()
        return cls.model_validate(item)


class DailyOverview(BaseModel):
    """The synthesized daily brief for one date."""

    model_config = ConfigDict(frozen=True)

    headline: str = Field(default="", description="<= 12 word headline")
    summary: str = Field(default="", description="150-220 word overview")
    bullets: list[str] = Field(default_factory=list, description="5-7 short points")
    tags: list[str] = Field(default_factory=list, description="5-10 lowercase slugs")

    @field_validator("headline", "summary", mode="before")
    @classmethod
    def _text(cls, value):
        return coerce_text(value)

    @field_validator("bullets", mode="before")
    @classmethod
    def _bullets(cls, value):
        return coerce_lines(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value):
        return slugify_tags(value)


class DailyDigest(BaseModel):
    """Persisted digest for one calendar date.

    The date string is the cache partition key. overview is None only for
    records written before overviews existed; those are upgraded on read.
    """

    date: str = Field(description="Calendar date (YYYY-MM-DD)")
    overview: DailyOverview | None = Field(default=None, description="Daily brief")
    items: list[ArticleSummary] = Field(default_factory=list, description="Per-article summaries")

    def to_record(self) -> dict:
        """Serialize to the on-disk / on-wire JSON shape."""
        return self.model_dump(mode="json", by_alias=True)
