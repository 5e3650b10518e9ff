"""HTTP surface for the daily digest.

Routes:
    GET /                       Plain-text banner
    GET /api/health             Service reachability + effective configuration
    GET /api/debug              Source file diagnostics
    GET /api/summarize/{date}   Digest for YYYY-MM-DD or 'today' (?rebuild=1)

Every response carries permissive CORS headers for GET. Summarize errors
keep the digest shape: {date, overview: null, items: [], error}.
"""

import logging
import uuid
from typing import Any

from aiohttp import web

from articles import describe_file
from cache import dump_record
from config import Config
from observability.logging import clear_context, set_request_context
from pipeline import DigestPipeline, InvalidDateError, ServiceUnavailableError, resolve_date, today_ymd

logger = logging.getLogger(__name__)

PIPELINE_KEY = web.AppKey("pipeline", DigestPipeline)
CONFIG_KEY = web.AppKey("config", Config)

_TRUTHY = {"1", "true", "yes"}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
}

BANNER = """Daily digest summarizer
  GET /api/health           (ok = generation service reachable)
  GET /api/debug
  GET /api/summarize/:date   (YYYY-MM-DD or 'today', ?rebuild=1 to force)
"""


def error_body(day: str, message: str) -> dict[str, Any]:
    """Digest-shaped error payload."""
    return {"date": day, "overview": None, "items": [], "error": message}


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def context_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Tag every log line of a request with a short request ID."""
    set_request_context(uuid.uuid4().hex[:8])
    try:
        return await handler(request)
    finally:
        clear_context()


async def handle_index(request: web.Request) -> web.Response:
    return web.Response(text=BANNER)


async def handle_health(request: web.Request) -> web.Response:
    """Report whether the generation service answers its probe."""
    config = request.app[CONFIG_KEY]
    pipeline = request.app[PIPELINE_KEY]
    return web.json_response({
        "ok": await pipeline.client.is_reachable(),
        "tz": config.tz_name,
        "today": today_ymd(pipeline.tz),
        "model": config.model,
        "serviceUrl": config.ollama_url,
    })


async def handle_debug(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    pipeline = request.app[PIPELINE_KEY]
    return web.json_response({
        "tz": config.tz_name,
        "today": today_ymd(pipeline.tz),
        "serviceUrl": config.ollama_url,
        "model": config.model,
        "feeds": [describe_file(path) for path in config.feed_files],
    })


async def handle_summarize(request: web.Request) -> web.Response:
    """Serve, upgrade, or build the digest for a date.

    Status codes:
        200: Digest (cached, upgraded, or freshly built)
        400: Malformed date
        503: Service unreachable and nothing cached
        500: Unexpected failure
    """
    pipeline = request.app[PIPELINE_KEY]
    raw_date = request.match_info["date"]
    rebuild = request.query.get("rebuild", "").strip().lower() in _TRUTHY

    try:
        day = resolve_date(raw_date, pipeline.tz)
    except InvalidDateError as e:
        logger.info("Rejected date | value=%s", raw_date)
        return web.json_response(error_body(raw_date, str(e)), status=400)

    logger.info("Summarize request | day=%s rebuild=%s", day, rebuild)
    try:
        record = await pipeline.get_digest(day, rebuild=rebuild)
    except ServiceUnavailableError as e:
        return web.json_response(error_body(day, e.message), status=503)
    except Exception as e:
        logger.error("Summarize failed | day=%s error=%s type=%s", day, e, type(e).__name__, exc_info=True)
        return web.json_response(error_body(day, str(e) or "summarization failed"), status=500)

    # Same serialization as the cache file so a cached date is served unchanged
    return web.json_response(record, dumps=dump_record)


async def _close_pipeline(app: web.Application) -> None:
    await app[PIPELINE_KEY].close()


def create_app(config: Config, pipeline: DigestPipeline | None = None) -> web.Application:
    """Build the aiohttp application.

    Args:
        config: Application configuration
        pipeline: Digest pipeline (default: built from config)

    Returns:
        Configured web.Application
    """
    app = web.Application(middlewares=[cors_middleware, context_middleware])
    app[CONFIG_KEY] = config
    app[PIPELINE_KEY] = pipeline or DigestPipeline(config)

    app.router.add_get("/", handle_index)
    app.router.add_get("/api/health", handle_health)
    app.router.add_get("/api/debug", handle_debug)
    app.router.add_get("/api/summarize/{date}", handle_summarize)

    app.on_cleanup.append(_close_pipeline)
    return app


def run_server(config: Config, host: str | None = None, port: int | None = None) -> None:
    """Run the server until interrupted."""
    host = host or config.host
    port = port or config.port
    logger.info("Server starting | host=%s port=%d model=%s service=%s", host, port, config.model, config.ollama_url)
    web.run_app(create_app(config), host=host, port=port, print=None)
