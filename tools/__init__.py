"""Outbound fetch tools for the digest pipeline.

fetch_article_text:
    Fetch an article page and extract its main text (never raises).

extract_main_text:
    Pure HTML-to-text extraction over an ordered selector chain.

Example:
    >>> from tools import fetch_article_text
    >>> text = await fetch_article_text("https://example.com/article")
"""

from tools.utils import create_ssl_context, PAGE_HEADERS, USER_AGENT
from tools.fetch import (
    CONTENT_EXTRACTORS,
    CONTENT_SELECTORS,
    MIN_WORDS,
    extract_main_text,
    fetch_article_text,
)

__all__ = [
    "fetch_article_text",
    "extract_main_text",
    "CONTENT_EXTRACTORS",
    "CONTENT_SELECTORS",
    "MIN_WORDS",
    "create_ssl_context",
    "PAGE_HEADERS",
    "USER_AGENT",
]
