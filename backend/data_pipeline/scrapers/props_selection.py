"""Activating one previously discovered category option."""
from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from data_pipeline.etl.records import CategoryOption
from data_pipeline.scrapers.props_popup import (
    click_option_in_list,
    close_popup,
    mentions_category,
)
from data_pipeline.scrapers.selectors import CLICKABLE, NATIVE_SELECT, POPUP_TRIGGERS
from proptracker.core.errors import SelectionNotFound

logger = logging.getLogger(__name__)


class OptionSelector:
    """Re-opens the category control and picks one option.

    Works the same whichever discovery strategy found the option.
    """

    def __init__(self, open_settle_ms: int = 400, after_select_ms: int = 300) -> None:
        self.open_settle_ms = open_settle_ms
        self.after_select_ms = after_select_ms

    async def select(self, page: Page, option: CategoryOption) -> str:
        """Select ``option``; returns the strategy that worked.

        Raises:
            SelectionNotFound: no strategy could activate the option.
        """
        for strategy in (self._select_native, self._select_via_popup, self._select_via_scan):
            if await strategy(page, option.label):
                await page.wait_for_timeout(self.after_select_ms)
                return strategy.__name__.replace("_select_", "")
        raise SelectionNotFound(option.label)

    async def _select_native(self, page: Page, label: str) -> bool:
        selects = page.locator(NATIVE_SELECT)
        for index in range(await selects.count()):
            select = selects.nth(index)
            if await select.locator("option", has_text=label).count() > 0:
                await select.select_option(label=label)
                return True
        return False

    async def _select_via_popup(self, page: Page, label: str) -> bool:
        triggers = page.locator(POPUP_TRIGGERS)
        for index in range(await triggers.count()):
            if await self._probe(page, triggers.nth(index), label, click_timeout_ms=3_000):
                return True
        return False

    async def _select_via_scan(self, page: Page, label: str) -> bool:
        candidates = page.locator(CLICKABLE)
        try:
            texts = await candidates.all_inner_texts()
        except PlaywrightError as exc:
            logger.debug(f"Scan could not read candidates: {exc}")
            return False
        for index, text in enumerate(texts):
            if not mentions_category(text):
                continue
            if await self._probe(page, candidates.nth(index), label, click_timeout_ms=2_000):
                return True
        return False

    async def _probe(self, page: Page, trigger, label: str, click_timeout_ms: int) -> bool:
        try:
            await trigger.click(timeout=click_timeout_ms)
            await page.wait_for_timeout(self.open_settle_ms)
            if await click_option_in_list(page, label):
                return True
        except PlaywrightError as exc:
            logger.debug(f"Selection probe failed for {label!r}: {exc}")
        await close_popup(page)
        return False
