"""Reading, refresh detection and row collection for the props table."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from data_pipeline.etl.records import PropRow
from data_pipeline.etl.transform import RowContext, RowNormalizer
from data_pipeline.scrapers.selectors import (
    LOADING_INDICATOR,
    SCROLL_CANDIDATES,
    SCROLL_MARKER,
    TABLE_CELLS,
    TABLE_CONTAINER,
    TABLE_HEADER_FALLBACKS,
    TABLE_ROWS,
)

logger = logging.getLogger(__name__)

SCROLL_FRACTION = 0.8
WHEEL_DELTA = 600

# innerText keeps the line breaks of composite player cells; textContent is
# only used where innerText is unavailable.
_BULK_READ_JS = """
([headerSelectors, rowSelector, cellSelector]) => {
    const text = (el) => ((el.innerText ?? el.textContent) || "").trim();
    let headers = [];
    for (const sel of headerSelectors) {
        const found = Array.from(document.querySelectorAll(sel)).map(text);
        if (found.length) { headers = found; break; }
    }
    const rows = Array.from(document.querySelectorAll(rowSelector))
        .map((row) => Array.from(row.querySelectorAll(cellSelector)).map(text))
        .filter((cells) => cells.length > 0);
    return { headers, rows };
}
"""

# Lists scrollable elements, the table's own ancestors first (nearest first),
# then generic candidates. Each is tagged with its index so the chosen one
# can be addressed again by selector.
_SCROLLABLES_JS = """
([tableSelector, rowSelector, candidateSelector, marker]) => {
    const scrollable = (el) => {
        const style = window.getComputedStyle(el);
        return /(auto|scroll)/.test(style.overflowY) && el.scrollHeight > el.clientHeight;
    };
    document.querySelectorAll(`[${marker}]`).forEach((el) => el.removeAttribute(marker));
    const found = [];
    let node = document.querySelector(tableSelector) || document.querySelector(rowSelector);
    while (node && node !== document.body) {
        if (scrollable(node)) found.push({ el: node, ancestor: true });
        node = node.parentElement;
    }
    document.querySelectorAll(candidateSelector).forEach((el) => {
        if (scrollable(el) && !found.some((f) => f.el === el)) {
            found.push({ el, ancestor: false });
        }
    });
    return found.map((f, index) => {
        f.el.setAttribute(marker, String(index));
        return {
            index,
            ancestor: f.ancestor,
            has_rows: f.el.querySelector(rowSelector) !== null,
            tag: f.el.tagName.toLowerCase(),
        };
    });
}
"""

_SCROLL_FORWARD_JS = """
([selector, fraction]) => {
    const el = document.querySelector(selector);
    if (!el) return false;
    el.scrollTop += Math.max(1, Math.floor(el.clientHeight * fraction));
    return true;
}
"""

_RESET_SCROLL_JS = """
(selector) => {
    const el = selector ? document.querySelector(selector) : null;
    if (el) el.scrollTop = 0;
    window.scrollTo(0, 0);
}
"""


def choose_scroll_container(scrollables: Sequence[Dict]) -> Optional[int]:
    """Index of the element that actually scrolls the table, if any.

    The nearest scrollable ancestor of the table wins; otherwise a generic
    candidate qualifies only if it holds table rows. A scrollable sidebar or
    nav is never chosen.
    """
    for entry in scrollables:
        if entry.get("ancestor"):
            return entry["index"]
    for entry in scrollables:
        if entry.get("has_rows"):
            return entry["index"]
    return None


class PropsTable:
    """Thin reader over the live props table on one page."""

    def __init__(self, page: Page) -> None:
        self.page = page
        self._scroll_selector: Optional[str] = None

    async def read_headers(self) -> List[str]:
        for selector in TABLE_HEADER_FALLBACKS:
            texts = await self.page.locator(selector).all_inner_texts()
            headers = [t.strip() for t in texts]
            if any(headers):
                return headers
        return []

    async def read_visible_rows(self, limit: Optional[int] = None) -> List[List[str]]:
        rows = self.page.locator(TABLE_ROWS)
        count = await rows.count()
        if limit is not None:
            count = min(count, limit)
        grid = []
        for index in range(count):
            cells = await rows.nth(index).locator(TABLE_CELLS).all_inner_texts()
            if cells:
                grid.append([c.strip() for c in cells])
        return grid

    async def bulk_read(self) -> Dict[str, List]:
        """One round trip: all headers and all body rows present in the document."""
        result = await self.page.evaluate(
            _BULK_READ_JS, [list(TABLE_HEADER_FALLBACKS), TABLE_ROWS, TABLE_CELLS]
        )
        return {"headers": result.get("headers") or [], "rows": result.get("rows") or []}

    async def first_row_signature(self) -> str:
        row = self.page.locator(TABLE_ROWS).first
        try:
            if await row.count() == 0:
                return ""
            cells = await row.locator(TABLE_CELLS).all_inner_texts()
        except PlaywrightError:
            return ""
        return "|".join(c.strip() for c in cells)

    async def loading_visible(self) -> bool:
        indicator = self.page.locator(LOADING_INDICATOR).first
        try:
            return await indicator.count() > 0 and await indicator.is_visible()
        except PlaywrightError:
            return False

    async def wait_loading_hidden(self, timeout_ms: int) -> None:
        try:
            await self.page.locator(LOADING_INDICATOR).first.wait_for(
                state="hidden", timeout=timeout_ms
            )
        except PlaywrightError as exc:
            logger.debug(f"Loading indicator still visible: {exc}")

    async def wait_network_idle(self, timeout_ms: int) -> None:
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightError as exc:
            logger.debug(f"Network did not go idle: {exc}")

    async def find_scroll_container(self) -> Optional[str]:
        """Tag the table's scrollable ancestor and return a selector for it."""
        scrollables = await self.page.evaluate(
            _SCROLLABLES_JS, [TABLE_CONTAINER, TABLE_ROWS, SCROLL_CANDIDATES, SCROLL_MARKER]
        )
        index = choose_scroll_container(scrollables or [])
        if index is None:
            if scrollables:
                logger.debug(f"Ignored {len(scrollables)} scrollable elements outside the table")
            self._scroll_selector = None
        else:
            self._scroll_selector = f'[{SCROLL_MARKER}="{index}"]'
        return self._scroll_selector

    async def scroll_forward(self) -> None:
        if self._scroll_selector and await self.page.evaluate(
            _SCROLL_FORWARD_JS, [self._scroll_selector, SCROLL_FRACTION]
        ):
            return
        await self.page.mouse.wheel(0, WHEEL_DELTA)

    async def reset_scroll(self) -> None:
        await self.page.evaluate(_RESET_SCROLL_JS, self._scroll_selector)


class RefreshDetector:
    """Waits for the table to show new content after a selection.

    Never raises on timeout; the last observed signature is returned, which
    may equal the previous one when the new category has the same top row.
    """

    def __init__(
        self,
        table: PropsTable,
        timeout_ms: int = 15_000,
        poll_ms: int = 300,
        loading_timeout_ms: int = 5_000,
        network_idle_ms: int = 3_000,
        grace_ms: int = 1_500,
    ) -> None:
        self.table = table
        self.timeout_ms = timeout_ms
        self.poll_ms = poll_ms
        self.loading_timeout_ms = loading_timeout_ms
        self.network_idle_ms = network_idle_ms
        self.grace_ms = grace_ms

    async def wait_for_change(self, previous: str) -> str:
        deadline = time.monotonic() + self.timeout_ms / 1000
        current = previous

        while time.monotonic() < deadline:
            if await self.table.loading_visible():
                # Playwright treats a zero timeout as "wait forever".
                remaining_ms = max(1, int((deadline - time.monotonic()) * 1000))
                await self.table.wait_loading_hidden(min(self.loading_timeout_ms, remaining_ms))
            current = await self.table.first_row_signature()
            if current and current != previous:
                return current
            await asyncio.sleep(self.poll_ms / 1000)

        logger.debug("Refresh poll deadline passed, waiting for network idle")
        await self.table.wait_network_idle(self.network_idle_ms)
        await asyncio.sleep(self.grace_ms / 1000)
        return await self.table.first_row_signature() or current


class RowCollector:
    """Harvests every row of the current category."""

    def __init__(
        self,
        table: PropsTable,
        normalizer: Optional[RowNormalizer] = None,
        max_scroll_attempts: int = 120,
        stable_threshold: int = 3,
        scroll_interval_ms: int = 600,
    ) -> None:
        self.table = table
        self.normalizer = normalizer or RowNormalizer()
        self.max_scroll_attempts = max_scroll_attempts
        self.stable_threshold = stable_threshold
        self.scroll_interval_ms = scroll_interval_ms

    async def collect(self, headers: Sequence[str], context: RowContext) -> List[PropRow]:
        try:
            rows = await self._collect_fast(headers, context)
            if rows:
                return rows
            return await self._collect_scrolling(headers, context)
        finally:
            await self.table.reset_scroll()

    async def _collect_fast(self, headers: Sequence[str], context: RowContext) -> List[PropRow]:
        snapshot = await self.table.bulk_read()
        grid = snapshot["rows"]
        if not grid:
            return []
        return self.normalizer.normalize_many(snapshot["headers"] or headers, grid, context)

    async def _collect_scrolling(
        self, headers: Sequence[str], context: RowContext
    ) -> List[PropRow]:
        await self.table.find_scroll_container()
        collected: Dict[str, PropRow] = {}
        stable = 0

        for _ in range(self.max_scroll_attempts):
            grid = await self.table.read_visible_rows()
            added = 0
            for row in self.normalizer.normalize_many(headers, grid, context):
                if row.signature not in collected:
                    collected[row.signature] = row
                    added += 1

            stable = stable + 1 if added == 0 else 0
            if stable >= self.stable_threshold:
                break

            await self.table.scroll_forward()
            await asyncio.sleep(self.scroll_interval_ms / 1000)

        logger.debug(f"Scroll collection finished with {len(collected)} rows")
        return list(collected.values())
