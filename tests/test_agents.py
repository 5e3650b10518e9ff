from __future__ import annotations

import asyncio

from agents.overview import (
    OverviewAgent,
    compact_summaries,
    degraded_overview,
    fallback_overview,
    merge_overview_result,
)
from agents.summarizer import (
    UNREACHABLE_SUMMARY,
    SummarizerAgent,
    build_article_prompt,
    degraded_article_summary,
)
from config import Config
from models.article import ArticleRef
from models.digest import ArticleSummary
from tests.conftest import DAY, FakeClient

META = ArticleRef(
    title="District expands tutoring",
    url="https://a",
    source="S",
    published_at="2024-01-01T15:00:00.000Z",
)


def _summary(n: int, **extra) -> ArticleSummary:
    return ArticleSummary(title=f"T{n}", source=f"S{n}", url=f"https://{n}", **extra)


def test_summarize_article_keeps_known_metadata() -> None:
    client = FakeClient()
    result = asyncio.run(SummarizerAgent(Config(), client).summarize_article("body", META))

    assert result.title == "District expands tutoring"
    assert result.url == "https://a"
    assert result.source == "S"
    assert result.published_at == "2024-01-01T15:00:00.000Z"
    assert result.summary == "A district expanded tutoring."
    assert result.bullets == ["Tutoring expanded", "Funding approved", "Starts in fall"]
    assert result.tags == ["tutoring", "k-12", "higher-ed"]


def test_summarize_article_untitled_takes_model_title() -> None:
    meta = META.model_copy(update={"title": ""})
    result = asyncio.run(SummarizerAgent(Config(), FakeClient()).summarize_article("body", meta))

    assert result.title == "Model Title"


def test_summarize_article_unparseable_uses_raw_text() -> None:
    raw = "  " + "x" * 900
    client = FakeClient(article=raw)
    result = asyncio.run(SummarizerAgent(Config(), client).summarize_article("body", META))

    assert result.summary == "x" * 800
    assert result.bullets == []
    assert result.tags == []
    assert result.url == "https://a"


def test_summarize_article_unreachable_placeholder() -> None:
    client = FakeClient(error="connection refused")
    result = asyncio.run(SummarizerAgent(Config(), client).summarize_article("body", META))

    assert result == degraded_article_summary(META)
    assert result.summary == UNREACHABLE_SUMMARY


def test_summarize_article_wrong_types_become_empty() -> None:
    client = FakeClient(article='{"summary": 42, "bullets": "one", "tags": {"a": 1}}')
    result = asyncio.run(SummarizerAgent(Config(), client).summarize_article("body", META))

    assert result.summary == ""
    assert result.bullets == []
    assert result.tags == []


def test_article_prompt_truncates_text() -> None:
    prompt = build_article_prompt("y" * 10_000, META, "education", 8000)

    assert "y" * 8000 in prompt
    assert "y" * 8001 not in prompt
    assert "URL: https://a" in prompt


def test_compact_summaries_bounds_fields() -> None:
    tags = [f"t{i}" for i in range(10)]
    (compact,) = compact_summaries([_summary(1, summary="z" * 500, tags=tags)])

    assert compact == {
        "title": "T1", "source": "S1", "url": "https://1",
        "tags": tags[:6], "summary": "z" * 300,
    }


def test_fallback_overview_stitches_titles() -> None:
    compact = compact_summaries([_summary(n) for n in range(1, 9)])
    overview = fallback_overview(DAY, compact, "education")

    assert overview.headline == "Daily Education Brief"
    assert overview.summary == "Highlights for 2024-01-01: " + " | ".join(
        f"T{n} - S{n}" for n in range(1, 7)
    )
    assert overview.bullets == [f"S{n}: T{n}" for n in range(1, 8)]
    assert overview.tags == ["daily-brief", "education", "policy", "k-12", "higher-ed"]


def test_degraded_overview_truncates_raw() -> None:
    overview = degraded_overview("w" * 1500, "education")

    assert overview.headline == "Daily Education Brief"
    assert overview.summary == "w" * 1200
    assert overview.bullets == [] and overview.tags == []


def test_merge_overview_defaults_missing_fields() -> None:
    overview = merge_overview_result({"summary": ["x"], "bullets": "nope", "tags": ["Policy"]}, "education")

    assert overview.headline == "Daily Education Brief"
    assert overview.summary == ""
    assert overview.bullets == []
    assert overview.tags == ["policy"]


def test_daily_overview_without_articles_skips_service() -> None:
    client = FakeClient()
    overview = asyncio.run(OverviewAgent(Config(), client).build_daily_overview(DAY, []))

    assert client.prompts == []
    assert overview.headline == "No articles found for 2024-01-01"
    assert overview.summary == ""
    assert overview.bullets == [] and overview.tags == []


def test_daily_overview_generated() -> None:
    client = FakeClient()
    overview = asyncio.run(OverviewAgent(Config(), client).build_daily_overview(DAY, [_summary(1)]))

    assert overview.headline == "Tutoring grows across districts"
    assert len(client.overview_prompts) == 1
    assert '"title": "T1"' in client.overview_prompts[0]


def test_daily_overview_unreachable_falls_back() -> None:
    client = FakeClient(error="timed out")
    overview = asyncio.run(OverviewAgent(Config(), client).build_daily_overview(DAY, [_summary(1)]))

    assert overview.summary == "Highlights for 2024-01-01: T1 - S1"


def test_daily_overview_unparseable_uses_raw() -> None:
    client = FakeClient(overview="Today was busy.")
    overview = asyncio.run(OverviewAgent(Config(), client).build_daily_overview(DAY, [_summary(1)]))

    assert overview.headline == "Daily Education Brief"
    assert overview.summary == "Today was busy."
