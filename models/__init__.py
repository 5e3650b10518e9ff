"""Pydantic models for the daily digest summarizer.

ArticleRef:
    Immutable ingested item selected for a given day.

ArticleSummary:
    Per-article summary with bullets and tags.

DailyOverview:
    The single synthesized brief for a day.

DailyDigest:
    Persisted record: {date, overview, items}.

Example:
    >>> from models import DailyDigest, DailyOverview
    >>> digest = DailyDigest(date="2024-01-01", overview=DailyOverview(headline="..."))
    >>> digest.to_record()["items"]
    []
"""

from models.article import ArticleRef
from models.digest import ArticleSummary, DailyDigest, DailyOverview

__all__ = [
    "ArticleRef",
    "ArticleSummary",
    "DailyOverview",
    "DailyDigest",
]
