"""Configuration management for the daily digest summarizer.

This module provides centralized configuration for all service components.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Generation Service:
        OLLAMA_URL: Base URL of the Ollama server
        OLLAMA_MODEL: Model identifier used for all generation calls
        GEN_TIMEOUT: Seconds allowed per generation call
        PROBE_TIMEOUT: Seconds allowed for the reachability probe

    Data:
        TZ_NAME: Reference time zone for calendar days
        FEED_FILES: Comma-separated ingestion JSON files
        SUMMARIES_DIR: Directory holding one cached digest per date
        STRICT_SOURCES: Reject ingestion documents with no known list key
        DIGEST_TOPIC: Topic wording used in prompts and fallback headlines

    Pipeline Behavior:
        PARALLEL: Maximum concurrent extract+summarize pipelines
        MAX_ARTICLE_CHARS: Article text truncation before prompting
        HTTP_TIMEOUT: Seconds allowed per article page fetch

    Server:
        HOST: Bind address
        PORT: Bind port

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_DIR: Directory for log files
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _env_paths(key: str, default: list[str]) -> list[Path]:
    """Get a comma-separated list of paths, ignoring blank entries."""
    val = os.environ.get(key)
    if not val:
        return [Path(p) for p in default]
    return [Path(p.strip()) for p in val.split(",") if p.strip()]


# Combined file written by the ingestion script
DEFAULT_FEED_FILES = ["public/data/education_all.json"]


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    All settings can be overridden via environment variables. Use Config.load()
    to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Generation Service ===
    ollama_url: str = "http://127.0.0.1:11434"  # OLLAMA_URL
    model: str = "llama3.2:3b"  # OLLAMA_MODEL
    gen_timeout: float = 30.0  # GEN_TIMEOUT - Per generation call
    probe_timeout: float = 4.0  # PROBE_TIMEOUT - Reachability probe

    # === Data ===
    tz_name: str = "America/New_York"  # TZ_NAME - Calendar day reference zone
    feed_files: list[Path] = field(
        default_factory=lambda: [Path(p) for p in DEFAULT_FEED_FILES]
    )
    summaries_dir: Path = field(default_factory=lambda: Path("public/summaries"))
    strict_sources: bool = False  # STRICT_SOURCES - No first-list-field scan
    topic: str = "education"  # DIGEST_TOPIC

    # === Pipeline Behavior ===
    parallel: int = 3  # PARALLEL - Concurrent extract+summarize pipelines
    max_article_chars: int = 8000  # MAX_ARTICLE_CHARS
    http_timeout: float = 15.0  # HTTP_TIMEOUT - Article page fetch

    # === Server ===
    host: str = "127.0.0.1"  # HOST
    port: int = 5174  # PORT

    # === Logging Configuration ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            ollama_url=_env("OLLAMA_URL", "http://127.0.0.1:11434").rstrip("/"),
            model=_env("OLLAMA_MODEL", "llama3.2:3b"),
            gen_timeout=_env_float("GEN_TIMEOUT", 30.0),
            probe_timeout=_env_float("PROBE_TIMEOUT", 4.0),
            tz_name=_env("TZ_NAME", "America/New_York"),
            feed_files=_env_paths("FEED_FILES", DEFAULT_FEED_FILES),
            summaries_dir=Path(_env("SUMMARIES_DIR", "public/summaries")),
            strict_sources=_env_bool("STRICT_SOURCES", False),
            topic=_env("DIGEST_TOPIC", "education"),
            parallel=_env_int("PARALLEL", 3),
            max_article_chars=_env_int("MAX_ARTICLE_CHARS", 8000),
            http_timeout=_env_float("HTTP_TIMEOUT", 15.0),
            host=_env("HOST", "127.0.0.1"),
            port=_env_int("PORT", 5174),
            log_dir=Path(_env("LOG_DIR", "log")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Returns:
            Error message string if invalid, None if valid.
        """
        if not self.ollama_url.startswith(("http://", "https://")):
            return f"Invalid OLLAMA_URL '{self.ollama_url}' - must start with http:// or https://"
        if not self.model:
            return "OLLAMA_MODEL must not be empty"
        try:
            ZoneInfo(self.tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            return f"Unknown TZ_NAME '{self.tz_name}'"
        if not self.feed_files:
            return "No FEED_FILES configured"
        if self.parallel <= 0:
            return "PARALLEL must be positive"
        if self.max_article_chars <= 0:
            return "MAX_ARTICLE_CHARS must be positive"
        if min(self.http_timeout, self.gen_timeout, self.probe_timeout) <= 0:
            return "Timeouts must be positive"
        if not 0 < self.port < 65536:
            return f"Invalid PORT {self.port}"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
