"""Scrape every prop category for one date and persist the results.

Usage::

    python -m data_pipeline.scrape_props --date 2026-01-15 --debug
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from dataclasses import asdict
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from data_pipeline.etl.export import ArtifactWriter
from data_pipeline.etl.load import PropLoader
from data_pipeline.etl.records import ScrapeSession
from data_pipeline.scrapers.props_scraper import PropsScraper, ScrapeOptions
from data_pipeline.scrapers.props_session import PropsBrowser
from proptracker.core.config import Settings, settings
from proptracker.core.errors import PersistenceFailure, PropScrapeError
from proptracker.core.lock import RunLock
from proptracker.core.logging import configure_logging, get_logger
from proptracker.db.session import SessionLocal, dispose_engine, get_engine

logger = get_logger(__name__)


def iso_date(value: str) -> str:
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from exc


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scrape player props for every category and store them"
    )
    parser.add_argument(
        "--date",
        type=iso_date,
        default=date.today().isoformat(),
        help="Date to record (YYYY-MM-DD, default: today)",
    )
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--debug", action="store_true", help="Save screenshots and HTML dumps")
    parser.add_argument(
        "--discover", action="store_true", help="Only discover categories and print diagnostics"
    )
    parser.add_argument("--no-db", action="store_true", help="Skip persisting to the database")
    parser.add_argument("--limit", type=int, help="Scrape only the first N categories")
    parser.add_argument("--category", help="Scrape only the category with this label")
    parser.add_argument("--url", help="Override the target base URL")
    return parser.parse_args(argv)


def persist(session: ScrapeSession, config: Settings) -> Dict[str, Any]:
    """Hand the session to the loader; failures never invalidate the scrape outputs.

    Building the engine is part of persisting: a bad URL or a missing driver
    is reported as a failed store, like a rejected write.
    """
    report: Dict[str, Any] = {"status": "skipped"}
    db = None
    try:
        get_engine(config.DATABASE_URL)
        db = SessionLocal()
        result = PropLoader(db, sport=config.SPORT, source=config.SOURCE).persist_session(session)
        report.update(asdict(result), status="ok")
    except PersistenceFailure as exc:
        logger.error("persistence_failed", error=str(exc))
        report.update(status="failed", error=str(exc))
    except Exception as exc:
        logger.error("persistence_failed", error=str(exc), error_type=type(exc).__name__)
        report.update(status="failed", error=f"{type(exc).__name__}: {exc}")
    finally:
        if db is not None:
            db.close()
    return report


async def run_scrape(args: argparse.Namespace, config: Settings) -> ScrapeSession:
    options = ScrapeOptions(
        debug=args.debug,
        discover_only=args.discover,
        limit=args.limit,
        only_label=args.category,
    )
    writer = ArtifactWriter(config.ARTIFACTS_DIR, args.date, sport=config.SPORT)
    async with PropsBrowser(
        config.STORAGE_STATE_PATH,
        base_url=args.url or config.BASE_URL,
        sport=config.SPORT,
        headless=not args.headed,
        navigation_timeout_ms=config.NAVIGATION_TIMEOUT_MS,
        verify_timeout_ms=config.SESSION_VERIFY_TIMEOUT_MS,
    ) as browser:
        await browser.verify_session()
        await browser.open_props_page()
        scraper = PropsScraper.from_settings(browser.page, writer, config)
        return await scraper.scrape(args.date, options)


def write_run_log(log_dir: str, report: Dict[str, Any]) -> Path:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    path = directory / f"scrape_{stamp}.json"
    with path.open("w", encoding="utf-8") as handle:
        json.dump(report, handle, indent=2, default=str)
    return path


def main(argv: Optional[List[str]] = None, config: Settings = settings) -> int:
    args = parse_args(argv)
    configure_logging(config.ENVIRONMENT)
    started = time.monotonic()

    report: Dict[str, Any] = {
        "success": False,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "session": None,
        "error": None,
        "duration_ms": 0,
        "db": {"status": "skipped"},
    }
    session: Optional[ScrapeSession] = None
    try:
        with RunLock(config.LOCK_PATH):
            session = asyncio.run(run_scrape(args, config))
            report["session"] = session.to_dict()
            report["success"] = True

            if args.no_db or args.discover:
                logger.info("persistence_skipped", reason="disabled by flag")
            elif not config.DATABASE_URL:
                logger.warning("persistence_skipped", reason="DATABASE_URL not set")
            else:
                report["db"] = persist(session, config)
    except PropScrapeError as exc:
        logger.error("run_failed", error=str(exc), error_type=type(exc).__name__)
        report["error"] = str(exc)
    except Exception as exc:
        logger.exception("run_crashed")
        report["error"] = f"{type(exc).__name__}: {exc}"
        raise
    finally:
        dispose_engine()
        report["duration_ms"] = int((time.monotonic() - started) * 1000)
        log_path = write_run_log(config.LOG_DIR, report)
        logger.info("run_log_written", path=str(log_path))

    if not report["success"] or session is None or session.errors:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
