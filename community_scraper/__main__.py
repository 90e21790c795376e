"""
CLI entry point for community-scraper.

Usage:
    python -m community_scraper
    python -m community_scraper --categories news,events
    python -m community_scraper --sources wetaskiwin_times --store /tmp/store.json
"""

import argparse
import asyncio
import json
import logging
import sys

import structlog

# Log level mapping
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def setup_logging(level: str = "INFO", json_output: bool = False):
    """Configure structured logging."""
    log_level = LOG_LEVELS.get(level.upper(), logging.INFO)

    if json_output:
        renderer = structlog.processors.JSONRenderer()
        timestamper = structlog.processors.TimeStamper(fmt="iso")
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        timestamper = structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S")

    # Logs go to stderr so stdout carries only the run summary
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            timestamper,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _split(value):
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Wetaskiwin community scraper: businesses, news and events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run every category
  python -m community_scraper

  # Only news and events
  python -m community_scraper --categories news,events

  # One source, custom store file
  python -m community_scraper --sources pipestone_flyer --store /tmp/store.json

  # Clean up after scraping instead of before
  python -m community_scraper --cleanup after
        """,
    )

    parser.add_argument(
        "--categories",
        type=str,
        help="Comma-separated categories: news, events, businesses (default: all)",
    )

    parser.add_argument(
        "--sources",
        type=str,
        help="Comma-separated list of source_ids to process (default: all)",
    )

    parser.add_argument(
        "--store",
        type=str,
        help="Path to the JSON store file (default: settings store_path)",
    )

    parser.add_argument(
        "--config-dir",
        type=str,
        help="Directory with settings.yml and sources.yml",
    )

    parser.add_argument(
        "--cleanup",
        choices=["before", "after"],
        help="Run retention cleanup before or after scraping",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON (for production)",
    )

    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    return parser.parse_args(argv)


async def main_async(args):
    """Async main function."""
    from .config.loader import ConfigLoader
    from .core.cache import ResponseCache
    from .core.http_client import HttpClient
    from .orchestrator import ScrapeOrchestrator
    from .storage import JsonFileStore

    logger = structlog.get_logger(__name__)

    loader = ConfigLoader(args.config_dir)
    settings = loader.load_settings()
    if args.cleanup:
        settings.cleanup_phase = args.cleanup

    sources = loader.load_sources()
    source_ids = _split(args.sources)
    if source_ids:
        sources = [s for s in sources if s.source_id in source_ids]

    store_path = args.store or settings.store_path
    logger.info(
        "starting_community_scraper",
        categories=args.categories or "all",
        sources=[s.source_id for s in sources],
        store=store_path,
    )

    store = JsonFileStore(store_path)
    cache = ResponseCache(settings.cache_ttl, settings.cache_cleanup_interval) if settings.enable_cache else None

    if cache:
        await cache.start()
    try:
        async with HttpClient.from_settings(settings, cache=cache) as http_client:
            orchestrator = ScrapeOrchestrator(settings, store, http_client, sources)
            return await orchestrator.run(_split(args.categories))
    finally:
        if cache:
            await cache.stop()


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    # Version check
    if args.version:
        from . import __version__
        print(f"community-scraper {__version__}")
        sys.exit(0)

    setup_logging(args.log_level, args.json_logs)

    from .errors import PersistenceError, RunFatalError

    logger = structlog.get_logger(__name__)

    try:
        summary = asyncio.run(main_async(args))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except (RunFatalError, PersistenceError) as e:
        logger.error("run_failed", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception("fatal_error", error=str(e))
        sys.exit(1)

    print(json.dumps(summary.to_dict(), ensure_ascii=False, indent=2))
    sys.exit(0)


if __name__ == "__main__":
    main()
