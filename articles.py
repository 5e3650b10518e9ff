"""Article store reader for ingested news items.

This module loads the day's candidate articles from the JSON files written
by the ingestion script. It converts raw records into ArticleRef objects
for pipeline processing.

Features:
    - Explicit adapters for each known document shape
    - Tolerant field mapping (link/url, source/site/outlet/feed, ...)
    - Date parsing for ISO-8601, RFC-2822 and epoch-millisecond values
    - Calendar-day filtering in a fixed reference time zone

Error Handling Strategy:
    - Missing or unreadable files are skipped
    - Unparseable JSON is skipped
    - Documents no adapter recognizes are skipped (UnknownSourceShapeError)
    - Records without a usable date are excluded
    - Nothing here raises to the caller for bad data
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from models.article import ArticleRef

logger = logging.getLogger(__name__)

# Record fields probed in order for each ArticleRef attribute
DATE_FIELDS = ("date", "published", "pubDate", "isoDate", "updated")
URL_FIELDS = ("link", "url")
SOURCE_FIELDS = ("source", "site", "outlet", "feed")
FALLBACK_FIELDS = ("description", "summary")

# Conventional keys under which producers expose their item list
LIST_KEYS = ("items", "articles", "entries", "data", "feed")


class UnknownSourceShapeError(ValueError):
    """Raised when no adapter recognizes an ingestion document."""
    pass


class ArticleSource:
    """Adapter for one producer document shape.

    Subclasses implement matches() and records(). records() is only called
    on documents for which matches() returned True.
    """

    name = "source"

    def matches(self, document: Any) -> bool:
        raise NotImplementedError

    def records(self, document: Any) -> list:
        """Extract the list of raw records from the document."""
        raise NotImplementedError


class ListDocument(ArticleSource):
    """Document that is itself the record list."""

    name = "list"

    def matches(self, document: Any) -> bool:
        return isinstance(document, list)

    def records(self, document: Any) -> list:
        return document


@dataclass
class KeyedDocument(ArticleSource):
    """Object exposing the record list under a conventional key."""

    key: str

    @property
    def name(self) -> str:
        return f"key:{self.key}"

    def matches(self, document: Any) -> bool:
        return isinstance(document, dict) and isinstance(document.get(self.key), list)

    def records(self, document: Any) -> list:
        return document[self.key]


class FirstListFieldDocument(ArticleSource):
    """Object whose first list-valued field holds the records."""

    name = "first-list-field"

    def matches(self, document: Any) -> bool:
        return isinstance(document, dict) and any(isinstance(v, list) for v in document.values())

    def records(self, document: Any) -> list:
        return next(v for v in document.values() if isinstance(v, list))


def default_sources(strict: bool = False) -> list[ArticleSource]:
    """Adapters in resolution order.

    Args:
        strict: If True, omit the first-list-field scan so unrecognized
                producer shapes surface as errors instead of guesses.
    """
    sources: list[ArticleSource] = [ListDocument()]
    sources.extend(KeyedDocument(key) for key in LIST_KEYS)
    if not strict:
        sources.append(FirstListFieldDocument())
    return sources


def resolve_source(document: Any, sources: Iterable[ArticleSource]) -> ArticleSource:
    """Pick the first adapter that recognizes the document.

    Raises:
        UnknownSourceShapeError: If no adapter matches
    """
    for source in sources:
        if source.matches(document):
            return source
    kind = type(document).__name__
    keys = sorted(document.keys()) if isinstance(document, dict) else []
    raise UnknownSourceShapeError(f"Unrecognized document shape: type={kind} keys={keys}")


def read_json(path: Path) -> Any | None:
    """Read and parse a JSON file, returning None on any read/parse error."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Source unreadable | file=%s error=%s", path, e)
        return None


def _first(record: dict, fields: Iterable[str]) -> Any:
    """Return the first truthy value among the given fields."""
    for field in fields:
        value = record.get(field)
        if value:
            return value
    return None


def parse_timestamp(value: Any, tz: ZoneInfo) -> datetime | None:
    """Parse a producer date value into an aware datetime.

    Accepts ISO-8601 strings (with 'Z', an offset, or naive), RFC-2822
    strings as found in RSS pubDate, and numbers as epoch milliseconds.
    Naive values are interpreted in the reference zone.

    Returns:
        Aware datetime, or None if the value cannot be parsed
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def to_iso_utc(moment: datetime) -> str:
    """Format an aware datetime as ISO-8601 UTC with millisecond precision."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _to_article(record: Any, day: date, tz: ZoneInfo) -> ArticleRef | None:
    """Map one raw record to an ArticleRef if it belongs to the given day."""
    if not isinstance(record, dict):
        return None
    published = parse_timestamp(_first(record, DATE_FIELDS), tz)
    if published is None or published.astimezone(tz).date() != day:
        return None
    return ArticleRef(
        title=str(record.get("title") or ""),
        url=str(_first(record, URL_FIELDS) or ""),
        source=str(_first(record, SOURCE_FIELDS) or "unknown"),
        published_at=to_iso_utc(published),
        fallback_summary=str(_first(record, FALLBACK_FIELDS) or ""),
    )


def load_articles_for(
    day: date,
    files: Iterable[Path],
    tz: ZoneInfo,
    strict: bool = False,
) -> list[ArticleRef]:
    """Load all articles published on the given calendar day.

    Files are processed in order; records keep their in-file order. Each
    file failure is logged and skipped without affecting other files.

    Args:
        day: Calendar day in the reference zone
        files: Ingestion JSON files
        tz: Reference time zone
        strict: Disable the first-list-field fallback adapter

    Returns:
        ArticleRefs for the day (may be empty)

    Example:
        >>> refs = load_articles_for(date(2024, 1, 1), [Path("all.json")], ZoneInfo("America/New_York"))
    """
    files = list(files)
    sources = default_sources(strict)
    articles: list[ArticleRef] = []

    for path in files:
        if not path.exists():
            logger.debug("Source missing | file=%s", path)
            continue
        document = read_json(path)
        if document is None:
            continue
        try:
            source = resolve_source(document, sources)
        except UnknownSourceShapeError as e:
            logger.warning("Source skipped | file=%s error=%s", path, e)
            continue

        records = source.records(document)
        matched = [a for a in (_to_article(r, day, tz) for r in records) if a is not None]
        articles.extend(matched)
        logger.debug(
            "Source read | file=%s shape=%s records=%d matched=%d",
            path, source.name, len(records), len(matched),
        )

    logger.info("Articles loaded | day=%s files=%d articles=%d", day.isoformat(), len(files), len(articles))
    return articles


def describe_file(path: Path) -> dict[str, Any]:
    """Describe an ingestion file's existence and top-level shape.

    Returns:
        {file, exists, type, keys} where type is 'missing', 'invalid',
        'array', 'object', or the JSON type name of the document.
    """
    exists = path.exists()
    info: dict[str, Any] = {"file": str(path), "exists": exists, "type": "missing", "keys": []}
    if not exists:
        return info
    document = read_json(path)
    if document is None:
        info["type"] = "invalid"
    elif isinstance(document, list):
        info["type"] = "array"
    elif isinstance(document, dict):
        info["type"] = "object"
        info["keys"] = list(document.keys())
    else:
        info["type"] = {str: "string", bool: "boolean", int: "number", float: "number"}.get(
            type(document), "null"
        )
    return info
