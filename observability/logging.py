"""Logging setup for the digest server and CLI.

Every record carries two correlation fields:
    request_id: short ID of the HTTP request being handled ('-' outside one)
    build_date: digest date being served or built ('-' when idle)

Both live in context variables, so concurrent requests and pool tasks
each log their own values. The server middleware sets request_id and the
pipeline sets build_date; ContextFilter copies them onto each record.

Output goes to stdout and to log/digest.log, as text or one JSON object
per line (LOG_FORMAT).
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler, RotatingFileHandler
from typing import Any

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
build_date_var: contextvars.ContextVar[str] = contextvars.ContextVar("build_date", default="-")

# Record attribute -> context variable
_CONTEXT_VARS = {
    "request_id": request_id_var,
    "build_date": build_date_var,
}

LOG_FILE_NAME = "digest.log"

# Libraries that log per connection or per call at INFO
_NOISY_LOGGERS = ("aiohttp", "openai", "httpx", "httpcore", "asyncio")


def set_request_context(request_id: str) -> None:
    request_id_var.set(request_id)


def set_build_context(build_date: str) -> None:
    """Tag subsequent log lines with the digest date (YYYY-MM-DD)."""
    build_date_var.set(build_date)


def clear_context() -> None:
    for var in _CONTEXT_VARS.values():
        var.set("-")


class ContextFilter(logging.Filter):
    """Copy the correlation context variables onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for attr, var in _CONTEXT_VARS.items():
            setattr(record, attr, var.get())
        return True


# LogRecord attributes that are never emitted as JSON extras
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "taskName", *_CONTEXT_VARS,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    Keys: timestamp, level, logger, message; request_id and build_date
    when set; source location for WARNING and above; exception text;
    then any `extra=` fields (non-serializable values as str()).
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (attr, value)
            for attr in _CONTEXT_VARS
            if (value := getattr(record, attr, "-")) != "-"
        )
        if record.levelno >= logging.WARNING:
            entry["source"] = {"file": record.filename, "line": record.lineno, "function": record.funcName}
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = str(value)
            entry[key] = value

        return json.dumps(entry, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """TIME [LEVEL] [request_id build_date] logger: message"""

    def __init__(self, include_date: bool = False):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] [%(request_id)s %(build_date)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S" if include_date else "%H:%M:%S",
        )


def _build_file_handler(config: Any) -> logging.Handler:
    """Size-based rotation when LOG_MAX_BYTES > 0, otherwise nightly."""
    log_file = config.log_dir / LOG_FILE_NAME
    if config.log_max_bytes > 0:
        return RotatingFileHandler(
            log_file,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
    return TimedRotatingFileHandler(
        log_file,
        when="midnight",
        backupCount=config.log_backup_count,
        encoding="utf-8",
    )


def _log_dir_writable(config: Any) -> bool:
    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        probe_file = config.log_dir / ".write_test"
        probe_file.touch()
        probe_file.unlink()
    except OSError as e:
        print(
            f"Warning: Cannot write to log directory '{config.log_dir}': {e}. "
            "Falling back to console-only logging.",
            file=sys.stderr,
        )
        return False
    return True


def setup_logging(config: Any, verbose: bool = False) -> bool:
    """Install console and file handlers on the root logger.

    Args:
        config: Configuration with LOG_* settings
        verbose: Force DEBUG on the console

    Returns:
        True if the file handler was installed, False for console-only
    """
    console_level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    json_output = config.log_format == "json"
    context_filter = ContextFilter()

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(JsonFormatter() if json_output else TextFormatter())
    console.addFilter(context_filter)
    root.addHandler(console)

    file_logging = _log_dir_writable(config)
    if file_logging:
        file_handler = _build_file_handler(config)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JsonFormatter() if json_output else TextFormatter(include_date=True))
        file_handler.addFilter(context_filter)
        root.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # One access line per request is still useful
    logging.getLogger("aiohttp.access").setLevel(logging.INFO)

    return file_logging
