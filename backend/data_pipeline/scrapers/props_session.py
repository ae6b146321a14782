"""Browser lifecycle, session verification and navigation to the props page.

Login is not handled here: the browser context is built from a previously
captured Playwright storage state.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from data_pipeline.scrapers.selectors import SEARCH_PLACEHOLDER
from proptracker.core.config import settings
from proptracker.core.errors import SessionExpired

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1440, "height": 900}
NETWORK_SETTLE_MS = 5_000


class PropsBrowser:
    """Chromium page authenticated from stored state.

    Usage::

        async with PropsBrowser(storage_state_path) as browser:
            await browser.verify_session()
            await browser.open_props_page()
            page = browser.page
    """

    def __init__(
        self,
        storage_state_path: str,
        base_url: str = settings.BASE_URL,
        sport: str = settings.SPORT,
        headless: bool = True,
        navigation_timeout_ms: int = settings.NAVIGATION_TIMEOUT_MS,
        verify_timeout_ms: int = settings.SESSION_VERIFY_TIMEOUT_MS,
    ) -> None:
        self.storage_state_path = Path(storage_state_path)
        self.base_url = base_url.rstrip("/")
        self.sport = sport.lower()
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self.verify_timeout_ms = verify_timeout_ms
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.page: Optional[Page] = None

    async def __aenter__(self) -> "PropsBrowser":
        if not self.storage_state_path.exists():
            raise SessionExpired(
                f"No stored browser state at {self.storage_state_path}; capture a login first"
            )
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(headless=self.headless)
        context = await self.browser.new_context(
            storage_state=str(self.storage_state_path),
            viewport=VIEWPORT,
        )
        context.set_default_navigation_timeout(self.navigation_timeout_ms)
        self.page = await context.new_page()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

    @property
    def props_url(self) -> str:
        return f"{self.base_url}/{self.sport}/props"

    def _require_page(self) -> Page:
        if not self.page:
            raise RuntimeError("Browser not initialized. Use async context manager.")
        return self.page

    async def verify_session(self) -> None:
        """Load the site and check for a logged-in indicator.

        Raises:
            SessionExpired: neither the search box nor the sport link shows up.
        """
        page = self._require_page()
        await page.goto(self.base_url, wait_until="domcontentloaded")

        search = page.get_by_placeholder(SEARCH_PLACEHOLDER)
        sport_link = page.locator(f'a[href*="/{self.sport}"]')
        try:
            await search.or_(sport_link).first.wait_for(
                state="visible", timeout=self.verify_timeout_ms
            )
        except PlaywrightError as exc:
            raise SessionExpired(
                "Logged-in indicator not found; the stored session has expired"
            ) from exc
        logger.info("Stored session verified")

    async def open_props_page(self) -> None:
        """Navigate to the sport's props page, trying the visible UI first."""
        page = self._require_page()
        if f"/{self.sport}" in page.url and "props" in page.url:
            logger.debug("Already on the props page")
        elif not await self._navigate_via_ui(page) or "props" not in page.url:
            logger.info(f"Falling back to direct navigation: {self.props_url}")
            await page.goto(self.props_url, wait_until="domcontentloaded")

        try:
            await page.wait_for_load_state("networkidle", timeout=NETWORK_SETTLE_MS)
        except PlaywrightError:
            logger.debug("Network still busy after navigation")

    async def _navigate_via_ui(self, page: Page) -> bool:
        sport_name = re.compile(rf"^\s*{re.escape(self.sport)}\s*$", re.I)
        candidates = (
            page.locator(f'a[href*="/{self.sport}"]'),
            page.locator("nav, header").get_by_text(sport_name),
        )
        for candidate in candidates:
            try:
                if await candidate.count() == 0:
                    continue
                await candidate.first.click(timeout=3_000)
                await page.wait_for_load_state("domcontentloaded")
                return True
            except PlaywrightError as exc:
                logger.debug(f"Sport navigation candidate failed: {exc}")

        selects = page.locator("select")
        for index in range(await selects.count()):
            select = selects.nth(index)
            option = select.locator("option", has_text=sport_name)
            if await option.count() == 0:
                continue
            try:
                value = await option.first.get_attribute("value")
                await select.select_option(value=value)
                await page.wait_for_load_state("domcontentloaded")
                return True
            except PlaywrightError as exc:
                logger.debug(f"Sport select failed: {exc}")
        return False
