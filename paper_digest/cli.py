"""Command-line interface for paper-digest.

Run with: python -m paper_digest.cli <command>

Logs are written to stderr as JSON lines; command results are printed
to stdout as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .cache import DailyCache
from .config_env import ConfigError, DigestConfig, load_config_from_env, parse_list
from .digest import DigestService
from .importer import PaperImporter, today_date
from .pdf import PdfDownloader
from .resolver import MetadataResolver
from .scheduler import DailyFetchScheduler
from .sources.arxiv import ArxivClient
from .sources.huggingface import HuggingFaceClient
from .storage import PaperStore
from .summarizer import PaperSummarizer

logger = logging.getLogger("paper_digest.cli")

EXTRA_FIELDS = ("command", "paper_id", "date", "count", "warmed", "failed", "skipped", "error")

# Commands that only read from storage
READ_ONLY_COMMANDS = ("dates", "list", "show")


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(level: int = logging.INFO) -> None:
    """Set up structured JSON logging for the whole package."""
    root = logging.getLogger("paper_digest")
    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)
    root.setLevel(level)


def log_info(message: str, **kwargs: Any) -> None:
    """Log info with extra structured fields."""
    logger.info(message, extra=kwargs)


def log_error(message: str, **kwargs: Any) -> None:
    """Log error with extra structured fields."""
    logger.error(message, extra=kwargs)


def emit(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def build_importer(config: DigestConfig, store: PaperStore) -> PaperImporter:
    """Wire the import pipeline from configuration."""
    resolver = MetadataResolver(
        huggingface=HuggingFaceClient(timeout=config.http_timeout),
        arxiv=ArxivClient(timeout=config.http_timeout),
    )
    return PaperImporter(
        store=store,
        resolver=resolver,
        summarizer=PaperSummarizer(config.create_llm()),
        downloader=PdfDownloader(timeout=config.pdf_timeout),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paper-digest", description="Research paper digest")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("import", help="Import one paper by id")
    p.add_argument("paper_id")

    p = sub.add_parser("warm", help="Import many papers with bounded concurrency")
    p.add_argument("paper_ids", nargs="+", help="Paper ids (space or comma separated)")
    p.add_argument("--concurrency", type=int, default=None)

    p = sub.add_parser("fetch-daily", help="Import today's top papers from the daily index")
    p.add_argument("--limit", type=int, default=None)
    p.add_argument("--force", action="store_true", help="Fetch even if today exists")

    sub.add_parser("dates", help="List dates with imported papers")

    p = sub.add_parser("list", help="List papers imported on a date")
    p.add_argument("--date", default=None)

    p = sub.add_parser("show", help="Show a stored paper")
    p.add_argument("paper_id")

    p = sub.add_parser("feed", help="Show the tagged feed for a topic")
    p.add_argument("--topic", default="ai")
    p.add_argument("--subtopic", default="everything")
    p.add_argument("--refresh", action="store_true")

    p = sub.add_parser("trends", help="Show the trend brief for a topic")
    p.add_argument("--topic", default="ai")
    p.add_argument("--subtopic", default="everything")
    p.add_argument("--range", dest="date_range", choices=["day", "week", "month"], default="month")
    p.add_argument("--refresh", action="store_true")

    sub.add_parser("schedule", help="Run the daily fetch every day at the cache rollover")

    return parser


async def run_command(args: argparse.Namespace, config: DigestConfig, store: PaperStore) -> int:
    """Dispatch a parsed command.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if args.command == "dates":
        emit(store.get_available_dates())
        return 0

    if args.command == "list":
        date = args.date or today_date()
        meta = store.get_day_meta(date)
        emit(
            {
                "date": date,
                "fetchedAt": meta.fetched_at if meta else None,
                "papers": [p.to_dict() for p in store.get_papers_for_date(date)],
            }
        )
        return 0

    if args.command == "show":
        found = store.find_paper_by_id(args.paper_id)
        if found is None:
            log_error("Paper not found", paper_id=args.paper_id)
            return 1
        emit({"date": found.date, "paper": found.paper.to_dict()})
        return 0

    if args.command in ("feed", "trends"):
        service = DigestService(
            DailyCache(store),
            config.create_llm(max_tokens=4096),
            huggingface=HuggingFaceClient(timeout=config.http_timeout),
            arxiv=ArxivClient(timeout=config.http_timeout),
        )
        try:
            if args.command == "feed":
                papers = await service.get_feed(args.topic, args.subtopic, refresh=args.refresh)
                output: Any = [p.to_dict() for p in papers]
            else:
                content = await service.get_trends(
                    args.topic, args.subtopic, args.date_range, refresh=args.refresh
                )
                output = {"content": content}
        except Exception as e:
            log_error(f"Failed to build {args.command}", command=args.command, error=str(e))
            return 1
        emit(output)
        return 0

    importer = build_importer(config, store)

    if args.command == "import":
        try:
            summary = await importer.import_paper(args.paper_id)
        except Exception as e:
            log_error("Import failed", paper_id=args.paper_id, error=str(e))
            return 1
        log_info(f'Imported "{summary.title}"', paper_id=summary.id)
        emit(summary.to_dict())
        return 0

    if args.command == "warm":
        paper_ids = [pid for arg in args.paper_ids for pid in parse_list(arg)]
        if not paper_ids:
            log_error("paper_ids must be a non-empty list")
            return 1
        concurrency = args.concurrency or config.import_concurrency
        result = await importer.batch_import_papers(paper_ids, concurrency=concurrency)
        log_info(
            "Warm complete",
            warmed=len(result.warmed),
            failed=len(result.failed),
            skipped=len(result.skipped),
        )
        emit(result.to_dict())
        return 1 if result.failed else 0

    huggingface = HuggingFaceClient(timeout=config.http_timeout)

    if args.command == "fetch-daily":
        result = await importer.fetch_daily(
            huggingface,
            limit=args.limit or config.daily_paper_limit,
            force=args.force,
            concurrency=config.import_concurrency,
        )
        if result is None:
            log_info("Papers already fetched for today", date=today_date())
            emit({"date": today_date(), "skipped": True})
            return 0
        emit({"date": today_date(), **result.to_dict()})
        return 1 if result.failed else 0

    if args.command == "schedule":
        scheduler = DailyFetchScheduler(
            importer,
            huggingface=huggingface,
            limit=config.daily_paper_limit,
            concurrency=config.import_concurrency,
        )
        scheduler.start()
        try:
            while scheduler.is_running:
                await asyncio.sleep(60)
        finally:
            scheduler.stop()
        return 0

    log_error("Unknown command", command=args.command)
    return 1


async def async_main(argv: list[str] | None = None) -> int:
    """Async main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = load_config_from_env(require_llm=args.command not in READ_ONLY_COMMANDS)
    except ConfigError as e:
        log_error("Configuration error", error=str(e))
        return 1

    store = config.create_store()
    return await run_command(args, config, store)


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    return asyncio.run(async_main(argv))


if __name__ == "__main__":
    sys.exit(main())
