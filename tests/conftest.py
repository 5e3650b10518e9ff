from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from aiohttp import web

from agents.client import GenerationError
from config import Config

DAY = "2024-01-01"

ARTICLE_RESPONSE = {
    "title": "Model Title",
    "source": "Model Source",
    "url": "https://model.example/other",
    "date": "1999-01-01",
    "summary": "A district expanded tutoring.",
    "bullets": ["Tutoring expanded", "Funding approved", "Starts in fall"],
    "tags": ["Tutoring", "k-12", "Higher Ed", "tutoring"],
}

OVERVIEW_RESPONSE = {
    "headline": "Tutoring grows across districts",
    "summary": "Districts expanded tutoring programs.",
    "bullets": ["One", "Two", "Three", "Four", "Five"],
    "tags": ["tutoring", "k-12", "policy", "funding", "equity"],
}


class FakeClient:
    """Stand-in for GenerationClient that records every call."""

    def __init__(
        self,
        reachable: bool = True,
        article: str | None = None,
        overview: str | None = None,
        error: str | None = None,
    ) -> None:
        self.reachable = reachable
        self.article = json.dumps(ARTICLE_RESPONSE) if article is None else article
        self.overview = json.dumps(OVERVIEW_RESPONSE) if overview is None else overview
        self.error = error
        self.probes = 0
        self.prompts: list[str] = []
        self.closed = False

    @property
    def overview_prompts(self) -> list[str]:
        return [p for p in self.prompts if "GRAND DAILY SUMMARY" in p]

    @property
    def article_prompts(self) -> list[str]:
        return [p for p in self.prompts if "GRAND DAILY SUMMARY" not in p]

    async def is_reachable(self) -> bool:
        self.probes += 1
        return self.reachable

    async def generate(self, prompt: str, temperature: float = 0.3) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise GenerationError(self.error)
        if "GRAND DAILY SUMMARY" in prompt:
            return self.overview
        return self.article

    async def close(self) -> None:
        self.closed = True


def write_json(path: Path, document: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def record(title: str, link: str, source: str = "S", date: str = "2024-01-01T15:00:00Z", **extra: Any) -> dict:
    return {"title": title, "link": link, "source": source, "date": date, **extra}


@pytest.fixture
def make_config(tmp_path: Path):
    def _make(records: Any = None, **overrides: Any) -> Config:
        feed = tmp_path / "data" / "education_all.json"
        if records is not None:
            write_json(feed, records)
        values = {
            "feed_files": [feed],
            "summaries_dir": tmp_path / "summaries",
            "log_dir": tmp_path / "log",
        }
        values.update(overrides)
        return Config(**values)

    return _make


CALLS = web.AppKey("calls", list)


def fake_ollama(content: str = '{"ok": true}', tags_status: int = 200) -> web.Application:
    """In-process stand-in for Ollama's native and OpenAI-compatible APIs."""
    calls: list[dict] = []

    async def tags(request: web.Request) -> web.Response:
        return web.json_response({"models": []}, status=tags_status)

    async def completions(request: web.Request) -> web.Response:
        calls.append(await request.json())
        return web.json_response({
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "created": 0,
            "model": calls[-1]["model"],
            "choices": [{
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }],
        })

    app = web.Application()
    app[CALLS] = calls
    app.router.add_get("/api/tags", tags)
    app.router.add_post("/v1/chat/completions", completions)
    return app
