"""Per-date digest cache on disk.

Each digest is stored as <SUMMARIES_DIR>/<YYYY-MM-DD>.json containing
exactly the DailyDigest shape. Records are read back as plain dicts so
that a cached date is served byte-for-byte the same on every request.

Validity:
    A record is valid when it is a JSON object whose 'items' is a list.
    A missing 'overview' does not invalidate it (pre-overview records are
    upgraded by the pipeline).

Writes:
    Each write goes to a temporary file in the same directory and is then
    moved into place with os.replace, so readers never see a partial file.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_valid_record(record: Any) -> bool:
    """Check the servable-record invariant."""
    return isinstance(record, dict) and isinstance(record.get("items"), list)


def dump_record(record: dict[str, Any]) -> str:
    """Serialize a record the way it is stored on disk."""
    return json.dumps(record, indent=2, ensure_ascii=False)


class DigestCache:
    """Date-keyed JSON file store for daily digests.

    Example:
        >>> cache = DigestCache(Path("public/summaries"))
        >>> cache.write("2024-01-01", {"date": "2024-01-01", "overview": None, "items": []})
        >>> cache.read("2024-01-01")["items"]
        []
    """

    def __init__(self, directory: Path):
        """Initialize the cache.

        Args:
            directory: Directory holding one JSON file per date
        """
        self.directory = Path(directory)

    def path_for(self, day: str) -> Path:
        """File path for a date key.

        Raises:
            ValueError: If the key is not a YYYY-MM-DD string
        """
        if not _DATE_KEY.match(day):
            raise ValueError(f"Invalid cache key: {day!r}")
        return self.directory / f"{day}.json"

    def exists(self, day: str) -> bool:
        return self.path_for(day).exists()

    def read(self, day: str) -> dict[str, Any] | None:
        """Load a valid cached record.

        Returns:
            The record dict, or None if absent, unreadable, or invalid
        """
        path = self.path_for(day)
        if not path.exists():
            return None
        try:
            record = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Cache unreadable | day=%s error=%s", day, e)
            return None
        if not is_valid_record(record):
            logger.warning("Cache invalid | day=%s", day)
            return None
        return record

    def write(self, day: str, record: dict[str, Any]) -> Path:
        """Atomically replace the slot for a date.

        Args:
            day: Date key (YYYY-MM-DD)
            record: Complete digest record (date, overview, items)

        Returns:
            Path of the written file
        """
        path = self.path_for(day)
        self.directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(dump_record(record))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Cache written | day=%s items=%d", day, len(record.get("items", [])))
        return path

    def dates(self) -> list[str]:
        """Sorted date keys that currently have a cache file."""
        if not self.directory.is_dir():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json") if _DATE_KEY.match(p.stem))
