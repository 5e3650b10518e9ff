"""Article text extraction for the summarization pipeline.

This module fetches article pages and extracts a plausible main-content
text block for the summarizer.

Features:
    - SSL fallback for problematic certificates
    - Script/style/noscript removal before extraction
    - Ordered content-region extractors, most specific first
    - Never raises: any failure yields empty text

Extraction is a heuristic. Callers treat empty or short output as a
normal outcome and fall back to the feed description or the title.
"""

import asyncio
import logging
import re
from functools import partial
from typing import Callable

import aiohttp
from bs4 import BeautifulSoup

from tools.utils import create_ssl_context, PAGE_HEADERS

logger = logging.getLogger(__name__)

# Candidate text must exceed this many words to be accepted
MIN_WORDS = 120

# Content regions, most specific first
CONTENT_SELECTORS = (
    "article",
    "main",
    "[role=main]",
    ".article",
    ".story",
    ".post",
    "#content",
    "body",
)

_WHITESPACE = re.compile(r"\s+")

Extractor = Callable[[BeautifulSoup], str | None]


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return _WHITESPACE.sub(" ", text).strip()


def select_text(selector: str, soup: BeautifulSoup) -> str | None:
    """Text of the first node matching the selector, or None if absent."""
    node = soup.select_one(selector)
    if node is None:
        return None
    return normalize_whitespace(node.get_text(" "))


# One pure extractor per selector; evaluated in order
CONTENT_EXTRACTORS: list[Extractor] = [partial(select_text, sel) for sel in CONTENT_SELECTORS]


def is_substantial(text: str | None, min_words: int = MIN_WORDS) -> bool:
    """Accept candidate text whose word count exceeds the threshold."""
    return bool(text) and len(text.split(" ")) > min_words


def extract_main_text(
    html: str,
    extractors: list[Extractor] | None = None,
    min_words: int = MIN_WORDS,
) -> str:
    """Extract the main article text from an HTML document.

    Args:
        html: Raw HTML
        extractors: Ordered candidate extractors (default: CONTENT_EXTRACTORS)
        min_words: Word threshold a candidate must exceed

    Returns:
        First substantial candidate, else the whole-body text
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    for extractor in extractors or CONTENT_EXTRACTORS:
        candidate = extractor(soup)
        if is_substantial(candidate, min_words):
            return candidate

    root = soup.body or soup
    return normalize_whitespace(root.get_text(" "))


async def _fetch_html(session: aiohttp.ClientSession, url: str, timeout: float, verify: bool) -> str:
    async with session.get(
        url,
        timeout=aiohttp.ClientTimeout(total=timeout),
        headers=PAGE_HEADERS,
        ssl=create_ssl_context(verify),
        allow_redirects=True,
    ) as resp:
        if not resp.ok:
            raise aiohttp.ClientResponseError(
                resp.request_info, resp.history, status=resp.status
            )
        return await resp.text(errors="replace")


async def fetch_article_text(url: str, timeout: float = 15.0) -> str:
    """Fetch a page and return its best-effort article text.

    Args:
        url: Article URL (empty URL returns '')
        timeout: Total request timeout in seconds

    Returns:
        Extracted text, or '' on network error, timeout or non-2xx status
    """
    if not url:
        return ""
    logger.debug("Fetching article: %s", url)

    try:
        async with aiohttp.ClientSession() as session:
            try:
                html = await _fetch_html(session, url, timeout, verify=True)
            except aiohttp.ClientSSLError:
                logger.debug("SSL error, retrying without verification: %s", url)
                html = await _fetch_html(session, url, timeout, verify=False)
    except aiohttp.ClientResponseError as e:
        logger.debug("Article fetch failed | url=%s status=%d", url, e.status)
        return ""
    except asyncio.TimeoutError:
        logger.debug("Article fetch timed out | url=%s timeout=%.0fs", url, timeout)
        return ""
    except (aiohttp.ClientError, ValueError) as e:
        logger.debug("Article fetch error | url=%s error=%s", url, e)
        return ""

    try:
        return extract_main_text(html)
    except Exception as e:
        logger.warning("Extraction failed | url=%s error=%s", url, e)
        return ""
