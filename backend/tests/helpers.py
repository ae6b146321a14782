# tests/helpers.py

import uuid
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional

from data_pipeline.etl.records import CategoryOption, PropRow
from proptracker.db import models

PROP_HEADERS = ["Player", "Line", "Over", "Under", "Proj", "Diff", "DvP", "L5", "L10", "H2H"]


def make_grid(count: int, line_offset: int = 0) -> List[List[str]]:
    """Body rows in the layout the props table renders."""
    grid = []
    for index in range(count):
        grid.append([
            f"Player {index}\nBOS | PG",
            f"{10 + index + line_offset}.5",
            "-110",
            "−105",
            f"{12 + index}.1",
            "1.6",
            f"{index + 1}th",
            "60%",
            "55%",
            "-",
        ])
    return grid


def make_rows(count: int, option: CategoryOption, date_iso: str = "2026-01-15") -> List[PropRow]:
    return [
        PropRow(
            category_key=option.key,
            category_label=option.label,
            date_iso=date_iso,
            player_name=f"Player {index}",
            team="BOS",
            line=10.5 + index,
            odds_over=-110,
            odds_under=-110,
            raw={"Player": f"Player {index}"},
        )
        for index in range(count)
    ]


class FakeElement:
    """One DOM node: its text, its children by selector, and what a click does."""

    def __init__(
        self,
        text: str = "",
        children: Optional[Dict[str, List["FakeElement"]]] = None,
        on_click: Optional[Callable[[], None]] = None,
    ) -> None:
        self.text = text
        self.children = children or {}
        self.on_click = on_click
        self.clicks = 0
        self.selected: Optional[str] = None


class FakeLocator:
    def __init__(self, resolve: Callable[[], List[FakeElement]]) -> None:
        self._resolve = resolve

    @property
    def first(self) -> "FakeLocator":
        return self.nth(0)

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(lambda: self._resolve()[index : index + 1])

    def locator(self, selector: str, has_text: Optional[str] = None) -> "FakeLocator":
        def resolve() -> List[FakeElement]:
            found = []
            for element in self._resolve():
                for child in element.children.get(selector, []):
                    if has_text is None or has_text in child.text:
                        found.append(child)
            return found

        return FakeLocator(resolve)

    async def count(self) -> int:
        return len(self._resolve())

    async def all_inner_texts(self) -> List[str]:
        return [element.text for element in self._resolve()]

    async def all_text_contents(self) -> List[str]:
        return [element.text for element in self._resolve()]

    async def click(self, timeout: Optional[int] = None) -> None:
        element = self._resolve()[0]
        element.clicks += 1
        if element.on_click:
            element.on_click()

    async def select_option(self, label: Optional[str] = None, value: Optional[str] = None) -> None:
        self._resolve()[0].selected = label or value


class FakeKeyboard:
    def __init__(self, page: "FakePage") -> None:
        self.page = page
        self.pressed: List[str] = []

    async def press(self, key: str) -> None:
        self.pressed.append(key)
        if key == "Escape":
            self.page.open_list = None


class FakePage:
    """Just enough of a Playwright page for the discovery and selection code.

    ``elements`` maps a selector to what ``page.locator(selector)`` finds.
    While ``open_list`` is set (a popup is open) option/list-item selectors
    resolve to it instead.
    """

    def __init__(self, elements: Optional[Dict[str, List[FakeElement]]] = None) -> None:
        self.elements = elements or {}
        self.open_list: Optional[List[FakeElement]] = None
        self.keyboard = FakeKeyboard(self)

    def locator(self, selector: str) -> FakeLocator:
        def resolve() -> List[FakeElement]:
            if self.open_list is not None and selector in ('[role="option"]', "li"):
                return self.open_list
            return self.elements.get(selector, [])

        return FakeLocator(resolve)

    def get_by_role(self, role: str, name: Optional[str] = None, exact: bool = False) -> FakeLocator:
        def resolve() -> List[FakeElement]:
            if self.open_list is None:
                return self.elements.get(f"role={role}", [])
            if role != "option":
                return []
            if name is None:
                return self.open_list
            if exact:
                return [e for e in self.open_list if e.text == name]
            return [e for e in self.open_list if name.lower() in e.text.lower()]

        return FakeLocator(resolve)

    def get_by_text(self, pattern) -> FakeLocator:
        return FakeLocator(lambda: [])

    async def wait_for_timeout(self, ms: int) -> None:
        return None


def popup_page(trigger_selector: str, labels: List[str]) -> FakePage:
    """A page whose only control opens a list of ``labels`` when clicked."""
    page = FakePage()
    items = [FakeElement(label) for label in labels]

    def open_list() -> None:
        page.open_list = items

    page.elements[trigger_selector] = [FakeElement("Points", on_click=open_list)]
    return page


def seed_props(db, date_iso: str, rows: Dict[str, List[dict]], sport: str = "nba"):
    """Store one finished run holding ``rows`` (category label -> row values)."""
    day = date.fromisoformat(date_iso)
    finished = datetime(day.year, day.month, day.day, 18, 0, tzinfo=timezone.utc)
    run = models.ScrapeRun(
        id=uuid.uuid4(),
        sport=sport,
        date_iso=day,
        started_at=finished,
        finished_at=finished,
        categories_attempted=len(rows),
        categories_succeeded=len(rows),
        rows_total=sum(len(values) for values in rows.values()),
        errors=[],
    )
    db.add(run)
    for label, values in rows.items():
        option = CategoryOption(label)
        for index, value in enumerate(values):
            db.add(
                models.PropRow(
                    run_id=run.id,
                    sport=sport,
                    date_iso=day,
                    category_key=option.key,
                    category_label=option.label,
                    raw={"Player": value["player_name"]},
                    row_signature=f"{option.key}-{index}-{value['player_name']}",
                    **value,
                )
            )
    db.commit()
    return run
