from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from config import Config
from observability.logging import (
    ContextFilter,
    JsonFormatter,
    TextFormatter,
    clear_context,
    set_build_context,
    set_request_context,
    setup_logging,
)


def test_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("OLLAMA_URL", "OLLAMA_MODEL", "TZ_NAME", "FEED_FILES", "PARALLEL", "PORT"):
        monkeypatch.delenv(key, raising=False)
    config = Config.load()

    assert config.ollama_url == "http://127.0.0.1:11434"
    assert config.model == "llama3.2:3b"
    assert config.tz_name == "America/New_York"
    assert config.feed_files == [Path("public/data/education_all.json")]
    assert config.parallel == 3
    assert config.port == 5174
    assert config.validate() is None


def test_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OLLAMA_URL", "http://ollama:11434/")
    monkeypatch.setenv("FEED_FILES", "a.json, b.json,,")
    monkeypatch.setenv("PARALLEL", "5")
    monkeypatch.setenv("STRICT_SOURCES", "yes")
    config = Config.load()

    assert config.ollama_url == "http://ollama:11434"
    assert config.feed_files == [Path("a.json"), Path("b.json")]
    assert config.parallel == 5
    assert config.strict_sources is True


def test_config_rejects_bad_number(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "not-a-number")
    with pytest.raises(ValueError, match="PORT"):
        Config.load()


@pytest.mark.parametrize("overrides, fragment", [
    ({"ollama_url": "ollama:11434"}, "OLLAMA_URL"),
    ({"tz_name": "Mars/Olympus"}, "TZ_NAME"),
    ({"parallel": 0}, "PARALLEL"),
    ({"feed_files": []}, "FEED_FILES"),
    ({"log_format": "xml"}, "LOG_FORMAT"),
])
def test_config_validate_errors(overrides: dict, fragment: str) -> None:
    error = Config(**overrides).validate()
    assert error is not None and fragment in error


def _record(message: str, level: int = logging.INFO) -> logging.LogRecord:
    record = logging.LogRecord("pipeline", level, __file__, 1, message, None, None)
    ContextFilter().filter(record)
    return record


def test_json_formatter_includes_context() -> None:
    set_request_context("abc12345")
    set_build_context("2024-01-01")
    try:
        data = json.loads(JsonFormatter().format(_record("Build done | day=2024-01-01")))
    finally:
        clear_context()

    assert data["message"] == "Build done | day=2024-01-01"
    assert data["request_id"] == "abc12345"
    assert data["build_date"] == "2024-01-01"
    assert "source" not in data


def test_text_formatter_shows_placeholders() -> None:
    clear_context()
    line = TextFormatter().format(_record("Cache hit", logging.WARNING))

    assert "[WARNING] [- -] pipeline: Cache hit" in line


def test_setup_logging_writes_file(tmp_path: Path) -> None:
    config = Config(log_dir=tmp_path / "log", log_format="json")
    root = logging.getLogger()
    saved = root.handlers[:]
    try:
        assert setup_logging(config) is True
        logging.getLogger("cache").info("Cache written | day=%s", "2024-01-01")
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in root.handlers[:]:
            handler.close()
            root.removeHandler(handler)
        for handler in saved:
            root.addHandler(handler)

    lines = (tmp_path / "log" / "digest.log").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["message"] == "Cache written | day=2024-01-01"
