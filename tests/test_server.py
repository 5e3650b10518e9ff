from __future__ import annotations

import asyncio
import json
from typing import Any

from aiohttp.test_utils import TestClient, TestServer

from pipeline import DigestPipeline
from server import create_app
from tests.conftest import DAY, FakeClient, fake_ollama, record


class Reply:
    def __init__(self, status: int, text: str, headers: Any) -> None:
        self.status = status
        self.text = text
        self.headers = headers

    @property
    def body(self) -> Any:
        return json.loads(self.text)


async def _no_page(url: str, timeout: float) -> str:
    return ""


def _get(app, *paths: str) -> list[Reply]:
    async def run() -> list[Reply]:
        replies = []
        async with TestClient(TestServer(app)) as client:
            for path in paths:
                resp = await client.get(path)
                replies.append(Reply(resp.status, await resp.text(), resp.headers))
        return replies

    return asyncio.run(run())


def _app(config, client: FakeClient):
    return create_app(config, DigestPipeline(config, client=client, fetch_text=_no_page))


def test_index_lists_endpoints(make_config) -> None:
    (reply,) = _get(_app(make_config([]), FakeClient()), "/")

    assert reply.status == 200
    assert "/api/summarize/:date" in reply.text


def test_health(make_config) -> None:
    config = make_config([])
    (reply,) = _get(_app(config, FakeClient()), "/api/health")

    assert reply.status == 200
    assert reply.body["ok"] is True
    assert reply.body["tz"] == "America/New_York"
    assert reply.body["model"] == config.model
    assert reply.body["serviceUrl"] == config.ollama_url
    assert len(reply.body["today"]) == 10
    assert reply.headers["Access-Control-Allow-Origin"] == "*"
    assert reply.headers["Access-Control-Allow-Methods"] == "GET"


def test_health_reports_unreachable_service(make_config) -> None:
    client = FakeClient(reachable=False)
    (reply,) = _get(_app(make_config([]), client), "/api/health")

    assert reply.status == 200
    assert reply.body["ok"] is False
    assert client.probes == 1


def test_debug_describes_feeds(make_config) -> None:
    config = make_config({"items": [record("A", "https://a")]})
    (reply,) = _get(_app(config, FakeClient()), "/api/debug")

    (feed,) = reply.body["feeds"]
    assert feed["exists"] is True
    assert feed["type"] == "object"
    assert feed["keys"] == ["items"]


def test_summarize_rejects_malformed_date(make_config) -> None:
    (reply,) = _get(_app(make_config([]), FakeClient()), "/api/summarize/01-01-2024")

    assert reply.status == 400
    assert reply.body["date"] == "01-01-2024"
    assert reply.body["overview"] is None
    assert reply.body["items"] == []
    assert reply.body["error"]


def test_summarize_unavailable_without_cache(make_config) -> None:
    config = make_config([record("X", "https://a", source="S")])
    (reply,) = _get(_app(config, FakeClient(reachable=False)), f"/api/summarize/{DAY}")

    assert reply.status == 503
    assert reply.body["date"] == DAY
    assert reply.body["overview"] is None
    assert reply.body["items"] == []
    assert "Cannot reach generation service" in reply.body["error"]
    assert reply.headers["Access-Control-Allow-Origin"] == "*"


def test_summarize_builds_then_serves_identical_bytes(make_config) -> None:
    config = make_config([record("A", "https://a")])
    client = FakeClient()
    first, second = _get(_app(config, client), f"/api/summarize/{DAY}", f"/api/summarize/{DAY}")

    assert first.status == second.status == 200
    assert first.text == second.text
    assert first.body["items"][0]["title"] == "A"
    assert first.text == (config.summaries_dir / f"{DAY}.json").read_text(encoding="utf-8")
    assert len(client.prompts) == 2


def test_summarize_rebuild_flag(make_config) -> None:
    config = make_config([record("A", "https://a")])
    client = FakeClient()
    _get(
        _app(config, client),
        f"/api/summarize/{DAY}",
        f"/api/summarize/{DAY}?rebuild=1",
        f"/api/summarize/{DAY}?rebuild=true",
        f"/api/summarize/{DAY}?rebuild=0",
    )

    assert len(client.overview_prompts) == 3


def test_summarize_unexpected_error_is_500(make_config) -> None:
    class BrokenPipeline(DigestPipeline):
        async def get_digest(self, day: str, rebuild: bool = False) -> dict:
            raise RuntimeError("disk on fire")

    config = make_config([])
    app = create_app(config, BrokenPipeline(config, client=FakeClient()))
    (reply,) = _get(app, f"/api/summarize/{DAY}")

    assert reply.status == 500
    assert reply.body == {"date": DAY, "overview": None, "items": [], "error": "disk on fire"}


def test_summarize_end_to_end_with_fake_service(make_config) -> None:
    article = json.dumps({"summary": "Generated.", "bullets": ["b1"], "tags": ["Policy"]})
    ollama = fake_ollama(content=article)

    async def run() -> tuple[int, dict]:
        async with TestServer(ollama) as service:
            config = make_config(
                [record("A", "https://a")],
                ollama_url=str(service.make_url("")).rstrip("/"),
            )
            app = create_app(config, DigestPipeline(config, fetch_text=_no_page))
            async with TestClient(TestServer(app)) as client:
                resp = await client.get("/api/summarize/2024-01-01")
                return resp.status, await resp.json()

    status, body = asyncio.run(run())

    assert status == 200
    assert body["items"][0]["summary"] == "Generated."
    assert body["items"][0]["tags"] == ["policy"]
    # Same canned reply for the overview call: no headline, so the fixed one applies
    assert body["overview"]["headline"] == "Daily Education Brief"
    assert body["overview"]["summary"] == "Generated."
