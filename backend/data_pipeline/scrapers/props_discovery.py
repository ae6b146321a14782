"""Discovery of the category control and its options.

The control's markup is not known ahead of time, so discovery runs an ordered
list of interchangeable locator strategies and keeps the first one that yields
a plausible category list. Adding or removing a strategy only changes
``default_strategies()``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from data_pipeline.etl.records import CategoryOption
from data_pipeline.scrapers.props_popup import (
    MIN_OPTIONS,
    clean_labels,
    close_popup,
    looks_like_categories,
    mentions_category,
    open_and_read,
)
from data_pipeline.scrapers.selectors import (
    CLICKABLE,
    COMBOBOX_ROLE,
    CONTROL_LABEL,
    LIST_ITEM_SELECTORS,
    NATIVE_SELECT,
    POPUP_BUTTONS,
    SHORT_LIST_ITEM_SELECTORS,
)

logger = logging.getLogger(__name__)


@dataclass
class Discovered:
    """Raw labels read by one strategy, tagged with how they were found."""

    strategy: str
    labels: List[str]


@dataclass
class DiscoveryDiagnostics:
    strategy_used: str
    option_count: int
    options: List[str]
    headers: List[str] = field(default_factory=list)
    sample_rows: List[List[str]] = field(default_factory=list)


@dataclass
class DiscoveryResult:
    options: List[CategoryOption]
    diagnostics: DiscoveryDiagnostics


class LocatorStrategy(ABC):
    """One way of finding the category control."""

    name: str = "strategy"

    @abstractmethod
    async def try_discover(self, page: Page) -> Optional[Discovered]:
        """Return the option labels, or None when this strategy finds nothing."""


class NativeSelectStrategy(LocatorStrategy):
    name = "native-select"

    async def try_discover(self, page: Page) -> Optional[Discovered]:
        selects = page.locator(NATIVE_SELECT)
        for index in range(await selects.count()):
            options = selects.nth(index).locator("option")
            if await options.count() < MIN_OPTIONS:
                continue
            texts = await options.all_text_contents()
            if looks_like_categories(texts):
                return Discovered(self.name, texts)
        return None


class ComboboxStrategy(LocatorStrategy):
    name = "combobox-role"

    async def try_discover(self, page: Page) -> Optional[Discovered]:
        combos = page.get_by_role(COMBOBOX_ROLE)
        for index in range(await combos.count()):
            found = await open_and_read(
                page, combos.nth(index), ('[role="option"]',), settle_ms=400
            )
            if found:
                return Discovered(self.name, found[1])
        return None


class PopupButtonStrategy(LocatorStrategy):
    name = "aria-haspopup"

    async def try_discover(self, page: Page) -> Optional[Discovered]:
        buttons = page.locator(POPUP_BUTTONS)
        for index in range(await buttons.count()):
            found = await open_and_read(page, buttons.nth(index), LIST_ITEM_SELECTORS)
            if found:
                selector, texts = found
                return Discovered(f"{self.name}+{selector}", texts)
        return None


class LabelProximityStrategy(LocatorStrategy):
    """Find the text naming the control, then try it and its neighbours."""

    name = "props-label-scan"
    max_labels = 10

    async def try_discover(self, page: Page) -> Optional[Discovered]:
        labels = page.get_by_text(CONTROL_LABEL)
        for index in range(min(await labels.count(), self.max_labels)):
            label = labels.nth(index)
            parent = label.locator("xpath=..")
            for target in (
                label,
                parent,
                parent.locator("button"),
                parent.locator(f'[role="{COMBOBOX_ROLE}"]'),
            ):
                if await target.count() == 0:
                    continue
                found = await open_and_read(
                    page, target.first, SHORT_LIST_ITEM_SELECTORS, click_timeout_ms=2_000
                )
                if found:
                    selector, texts = found
                    return Discovered(f"{self.name}+{selector}", texts)
        return None


class BroadScanStrategy(LocatorStrategy):
    """Last resort: any clickable element already showing a category-like label."""

    name = "broad-scan"

    async def try_discover(self, page: Page) -> Optional[Discovered]:
        candidates = page.locator(CLICKABLE)
        try:
            texts = await candidates.all_inner_texts()
        except PlaywrightError as exc:
            logger.debug(f"Broad scan could not read candidates: {exc}")
            return None

        for index, text in enumerate(texts):
            if not mentions_category(text):
                continue
            found = await open_and_read(
                page, candidates.nth(index), SHORT_LIST_ITEM_SELECTORS, click_timeout_ms=2_000
            )
            if found:
                selector, labels = found
                return Discovered(f"{self.name}+{selector}", labels)
        return None


def default_strategies() -> List[LocatorStrategy]:
    return [
        NativeSelectStrategy(),
        ComboboxStrategy(),
        PopupButtonStrategy(),
        LabelProximityStrategy(),
        BroadScanStrategy(),
    ]


def build_options(labels: Sequence[str]) -> List[CategoryOption]:
    """Turn raw labels into options, deduplicated by key in first-seen order."""
    options: List[CategoryOption] = []
    seen = set()
    for label in clean_labels(labels):
        option = CategoryOption(label)
        if not option.key or option.key in seen:
            continue
        seen.add(option.key)
        options.append(option)
    return options


class OptionDiscoverer:
    """Runs the strategies in priority order and reports what it saw."""

    def __init__(self, strategies: Optional[Sequence[LocatorStrategy]] = None) -> None:
        self.strategies = list(strategies) if strategies is not None else default_strategies()

    async def discover(self, page: Page, table=None) -> DiscoveryResult:
        """Return every category option; an empty list is a normal outcome.

        ``table`` (a ``PropsTable``) is only used for diagnostics.
        """
        strategy_used = "none"
        options: List[CategoryOption] = []

        for strategy in self.strategies:
            try:
                found = await strategy.try_discover(page)
            except PlaywrightError as exc:
                logger.warning(f"Strategy {strategy.name} failed: {exc}")
                found = None
            if not found:
                continue
            candidate = build_options(found.labels)
            if len(candidate) >= MIN_OPTIONS and looks_like_categories(found.labels):
                strategy_used = found.strategy
                options = candidate
                break

        await close_popup(page)

        headers: List[str] = []
        sample_rows: List[List[str]] = []
        if table is not None:
            headers = await table.read_headers()
            sample_rows = await table.read_visible_rows(limit=3)

        diagnostics = DiscoveryDiagnostics(
            strategy_used=strategy_used,
            option_count=len(options),
            options=[o.label for o in options],
            headers=headers,
            sample_rows=sample_rows,
        )
        return DiscoveryResult(options=options, diagnostics=diagnostics)
