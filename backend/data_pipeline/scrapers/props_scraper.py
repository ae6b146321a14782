"""Scrape orchestration: discover once, then select/refresh/collect/write each category."""
from __future__ import annotations

import asyncio
import enum
import time
from dataclasses import dataclass
from typing import List, Optional

import structlog
from playwright.async_api import Page

from data_pipeline.etl.export import ArtifactWriter
from data_pipeline.etl.records import CategoryOption, CategoryResult, ScrapeSession
from data_pipeline.etl.transform import RowContext, RowNormalizer
from data_pipeline.scrapers.props_discovery import DiscoveryResult, OptionDiscoverer
from data_pipeline.scrapers.props_selection import OptionSelector
from data_pipeline.scrapers.props_table import PropsTable, RefreshDetector, RowCollector
from proptracker.core.config import Settings
from proptracker.core.errors import DiscoveryEmpty, NoHeadersFound
from proptracker.core.logging import get_logger

logger = get_logger(__name__)


class CategoryState(str, enum.Enum):
    PENDING = "pending"
    SELECTING = "selecting"
    AWAITING_REFRESH = "awaiting_refresh"
    COLLECTING = "collecting"
    WRITING = "writing"
    DONE = "done"
    RETRYING = "retrying"
    FAILED = "failed"


@dataclass
class ScrapeOptions:
    debug: bool = False
    discover_only: bool = False
    limit: Optional[int] = None
    only_label: Optional[str] = None


class PropsScraper:
    """Runs every discovered category in sequence against one page.

    A category that exhausts its attempts is recorded on the session and the
    run moves on; only an empty discovery aborts the run.
    """

    def __init__(
        self,
        page: Page,
        writer: ArtifactWriter,
        table: PropsTable,
        discoverer: OptionDiscoverer,
        selector: OptionSelector,
        refresh: RefreshDetector,
        collector: RowCollector,
        retry_count: int = 3,
        retry_backoff_ms: int = 2_000,
    ) -> None:
        self.page = page
        self.writer = writer
        self.table = table
        self.discoverer = discoverer
        self.selector = selector
        self.refresh = refresh
        self.collector = collector
        self.retry_count = max(1, retry_count)
        self.retry_backoff_ms = retry_backoff_ms

    @classmethod
    def from_settings(cls, page: Page, writer: ArtifactWriter, config: Settings) -> "PropsScraper":
        table = PropsTable(page)
        return cls(
            page=page,
            writer=writer,
            table=table,
            discoverer=OptionDiscoverer(),
            selector=OptionSelector(),
            refresh=RefreshDetector(table, timeout_ms=config.TABLE_REFRESH_TIMEOUT_MS),
            collector=RowCollector(
                table,
                RowNormalizer(),
                max_scroll_attempts=config.MAX_SCROLL_ATTEMPTS,
                stable_threshold=config.STABLE_SCROLL_THRESHOLD,
                scroll_interval_ms=config.SCROLL_INTERVAL_MS,
            ),
            retry_count=config.SCRAPE_RETRY_COUNT,
            retry_backoff_ms=config.RETRY_BACKOFF_MS,
        )

    async def scrape(self, date_iso: str, options: Optional[ScrapeOptions] = None) -> ScrapeSession:
        """Scrape all categories for ``date_iso``.

        Raises:
            DiscoveryEmpty: no category could be found (or none matched
                ``only_label``). The empty combined session is written first.
        """
        options = options or ScrapeOptions()
        session = ScrapeSession(date_iso=date_iso)

        discovery = await self.discoverer.discover(self.page, self.table)
        self._log_discovery(discovery)
        if options.debug:
            await self.writer.save_debug(self.page, "discovery")

        if options.discover_only:
            return session.finalize(attempted=0)

        categories = self._choose_categories(discovery.options, options)
        if not categories:
            session.finalize(attempted=0)
            self.writer.write_session(session)
            if discovery.options:
                raise DiscoveryEmpty(f'No discovered category matches "{options.only_label}"')
            raise DiscoveryEmpty("No prop categories discovered on the page")

        previous = await self.table.first_row_signature()
        for index, option in enumerate(categories, start=1):
            logger.info(
                "category_started", category=option.label, position=index, total=len(categories)
            )
            previous = await self._scrape_category(session, option, previous, options.debug)

        session.finalize(attempted=len(categories))
        self.writer.write_session(session)
        logger.info(
            "session_finished",
            attempted=session.summary.attempted,
            succeeded=session.summary.succeeded,
            rows_total=session.summary.rows_total,
            errors=len(session.errors),
        )
        return session

    def _choose_categories(
        self, discovered: List[CategoryOption], options: ScrapeOptions
    ) -> List[CategoryOption]:
        categories = list(discovered)
        if options.only_label:
            wanted = options.only_label.strip().lower()
            categories = [o for o in categories if o.label.lower() == wanted]
        if options.limit is not None and options.limit > 0:
            categories = categories[: options.limit]
        return categories

    def _log_discovery(self, discovery: DiscoveryResult) -> None:
        diagnostics = discovery.diagnostics
        logger.info(
            "categories_discovered",
            strategy=diagnostics.strategy_used,
            count=diagnostics.option_count,
            options=diagnostics.options,
            headers=diagnostics.headers,
            sample_row=diagnostics.sample_rows[0] if diagnostics.sample_rows else None,
        )

    async def _scrape_category(
        self, session: ScrapeSession, option: CategoryOption, previous: str, debug: bool
    ) -> str:
        """Run one category with retries; returns the table signature to seed the next one."""
        last_error: Optional[Exception] = None

        with structlog.contextvars.bound_contextvars(category_key=option.key):
            for attempt in range(1, self.retry_count + 1):
                state = CategoryState.PENDING
                started = time.monotonic()
                try:
                    state = CategoryState.SELECTING
                    await self.selector.select(self.page, option)
                    logger.debug("category_selected", attempt=attempt)

                    state = CategoryState.AWAITING_REFRESH
                    signature = await self.refresh.wait_for_change(previous)

                    state = CategoryState.COLLECTING
                    headers = await self.table.read_headers()
                    if not headers:
                        raise NoHeadersFound(f'No table headers after selecting "{option.label}"')
                    context = RowContext.for_option(option, session.date_iso)
                    rows = await self.collector.collect(headers, context)
                    logger.info("rows_collected", rows=len(rows), attempt=attempt)

                    state = CategoryState.WRITING
                    result = CategoryResult(
                        category_key=option.key,
                        category_label=option.label,
                        rows=rows,
                        row_count=len(rows),
                        duration_ms=int((time.monotonic() - started) * 1000),
                    )
                    self.writer.write_category(result)
                    session.add_result(result)
                    if debug:
                        await self.writer.save_debug(self.page, "success", option.key)

                    state = CategoryState.DONE
                    return signature
                except Exception as exc:
                    last_error = exc
                    logger.warning(
                        "attempt_failed",
                        attempt=attempt,
                        max_attempts=self.retry_count,
                        state=state.value,
                        error=str(exc),
                    )
                    if debug:
                        await self.writer.save_debug(self.page, f"error_attempt{attempt}", option.key)
                    if attempt < self.retry_count:
                        logger.debug("category_retrying", state=CategoryState.RETRYING.value)
                        await asyncio.sleep(self.retry_backoff_ms / 1000)

            logger.error("category_failed", state=CategoryState.FAILED.value, error=str(last_error))
            session.add_error(option, f"Failed after {self.retry_count} attempts: {last_error}")
            return await self.table.first_row_signature()
