#!/usr/bin/env python3
"""Daily digest: per-day news summaries served over HTTP.

This CLI runs the digest server, builds a single day's digest, or shows
the effective configuration and cache state.

Commands:
    serve       Run the HTTP server
    build       Build (or read from cache) one day's digest and print it
    status      Show configuration and cached dates

Examples:
    python main.py serve                      # 127.0.0.1:5174
    python main.py serve --port 8000 -v       # Debug logging
    python main.py build today                # Cached or fresh digest
    python main.py build 2024-01-01 --rebuild # Force a full rebuild
    python main.py status

Environment:
    OLLAMA_URL, OLLAMA_MODEL: Generation service
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys
from zoneinfo import ZoneInfo

from config import Config
from observability.logging import setup_logging

# Exit code when the generation service is down and nothing is cached
EXIT_UNAVAILABLE = 2


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    """Run the HTTP server until interrupted.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from server import run_server

    run_server(config, host=args.host, port=args.port)
    return 0


def cmd_build(args: argparse.Namespace, config: Config) -> int:
    """Serve or build one day's digest and print it as JSON.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success, 2 if the service is unavailable)
    """
    from cache import dump_record
    from pipeline import DigestPipeline, InvalidDateError, ServiceUnavailableError, resolve_date

    logger = logging.getLogger(__name__)

    try:
        day = resolve_date(args.date, ZoneInfo(config.tz_name))
    except InvalidDateError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    async def run_build() -> dict:
        pipeline = DigestPipeline(config)
        try:
            return await pipeline.get_digest(day, rebuild=args.rebuild)
        finally:
            await pipeline.close()

    try:
        record = asyncio.run(run_build())
    except ServiceUnavailableError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_UNAVAILABLE
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130  # Standard exit code for SIGINT

    print(dump_record(record))
    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and cache state.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from articles import describe_file
    from cache import DigestCache

    cache = DigestCache(config.summaries_dir)
    status = {
        "config": {
            "service_url": config.ollama_url,
            "model": config.model,
            "tz": config.tz_name,
            "topic": config.topic,
            "parallel": config.parallel,
            "strict_sources": config.strict_sources,
        },
        "feeds": [describe_file(path) for path in config.feed_files],
        "cache": {
            "path": str(config.summaries_dir),
            "dates": cache.dates(),
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Daily digest: per-day news summaries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument(
        "--host",
        help="Bind address (default: config HOST)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        help="Bind port (default: config PORT)",
    )
    serve_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable debug logging",
    )

    # build command
    build_parser = subparsers.add_parser("build", help="Build one day's digest")
    build_parser.add_argument(
        "date",
        help="YYYY-MM-DD or 'today'",
    )
    build_parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Ignore the cached digest and rebuild",
    )

    # status command
    subparsers.add_parser("status", help="Show configuration and cached dates")

    args = parser.parse_args()

    # Load configuration
    config = Config.load()

    # Setup logging
    setup_logging(config, verbose=getattr(args, "verbose", False))

    # Validate configuration for commands that need it
    if args.command in ("serve", "build"):
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    # Route to command handler
    commands = {
        "serve": cmd_serve,
        "build": cmd_build,
        "status": cmd_status,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logging.getLogger(__name__).error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
