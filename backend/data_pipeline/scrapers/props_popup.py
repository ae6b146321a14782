"""Helpers for opening, reading and closing the category popup."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from data_pipeline.scrapers.selectors import (
    CATEGORY_VOCABULARY,
    PLACEHOLDER_OPTION,
    SHORT_LIST_ITEM_SELECTORS,
)

logger = logging.getLogger(__name__)

MIN_OPTIONS = 3
CLOSE_SETTLE_MS = 200


def clean_labels(texts: Iterable[str]) -> List[str]:
    """Strip whitespace and drop blanks and placeholder entries."""
    labels = []
    for text in texts:
        label = (text or "").strip()
        if label and not PLACEHOLDER_OPTION.match(label):
            labels.append(label)
    return labels


def looks_like_categories(texts: Iterable[str]) -> bool:
    labels = clean_labels(texts)
    return len(labels) >= MIN_OPTIONS and any(CATEGORY_VOCABULARY.search(t) for t in labels)


def mentions_category(text: str) -> bool:
    return bool(CATEGORY_VOCABULARY.search(text or ""))


async def close_popup(page: Page, settle_ms: int = CLOSE_SETTLE_MS) -> None:
    """Dismiss whatever overlay is open so probes do not stack up."""
    try:
        await page.keyboard.press("Escape")
        await page.wait_for_timeout(settle_ms)
    except PlaywrightError as exc:
        logger.debug(f"Escape press failed: {exc}")


async def read_open_list(
    page: Page, selectors: Sequence[str]
) -> Optional[Tuple[str, List[str]]]:
    """Return ``(selector, texts)`` for the first selector listing plausible categories."""
    for selector in selectors:
        items = page.locator(selector)
        if await items.count() < MIN_OPTIONS:
            continue
        texts = await items.all_inner_texts()
        if looks_like_categories(texts):
            return selector, texts
    return None


async def open_and_read(
    page: Page,
    trigger: Locator,
    selectors: Sequence[str],
    click_timeout_ms: int = 3_000,
    settle_ms: int = 500,
) -> Optional[Tuple[str, List[str]]]:
    """Click ``trigger``, read the opened list, and always close it again."""
    try:
        await trigger.click(timeout=click_timeout_ms)
        await page.wait_for_timeout(settle_ms)
        return await read_open_list(page, selectors)
    except PlaywrightError as exc:
        logger.debug(f"Probe failed: {exc}")
        return None
    finally:
        await close_popup(page)


async def click_option_in_list(page: Page, label: str) -> bool:
    """Click ``label`` in whichever list is currently open."""
    exact = page.get_by_role("option", name=label, exact=True)
    if await exact.count() > 0:
        await exact.first.click()
        return True

    for role in ("option", "menuitem"):
        loose = page.get_by_role(role, name=label)
        if await loose.count() > 0:
            await loose.first.click()
            return True

    for selector in SHORT_LIST_ITEM_SELECTORS:
        items = page.locator(selector)
        texts = await items.all_inner_texts()
        for index, text in enumerate(texts):
            text = text.strip()
            if text == label or label in text:
                await items.nth(index).click()
                return True

    return False
