"""Selectors and vocabulary for the props page.

If the site's markup changes, this is the module to update.
"""
import re

# Short stat keywords that category labels are built from.
CATEGORY_VOCABULARY = re.compile(
    r"pts|ast|reb|stl|blk|3pm|tov|points|assists|rebounds|steals|blocks|turnovers|threes",
    re.I,
)
# Entries in an opened list that are placeholders, not categories.
PLACEHOLDER_OPTION = re.compile(r"^(select|choose|all\b|--)", re.I)
# On-page label naming the category control.
CONTROL_LABEL = re.compile(r"^\s*props?\s*$", re.I)

NATIVE_SELECT = "select"
COMBOBOX_ROLE = "combobox"
POPUP_BUTTONS = (
    'button[aria-haspopup="listbox"], button[aria-haspopup="menu"], button[aria-haspopup="true"]'
)
POPUP_TRIGGERS = 'button[aria-haspopup], [role="combobox"], [role="button"][aria-haspopup]'
CLICKABLE = 'button, [role="combobox"], [role="button"], [tabindex="0"]'

# Candidate selectors for the items of an opened popup, most specific first.
LIST_ITEM_SELECTORS = (
    '[role="option"]',
    '[role="menuitem"]',
    '[role="listbox"] > *',
    'ul[role="listbox"] li',
    "li",
)
SHORT_LIST_ITEM_SELECTORS = ('[role="option"]', '[role="menuitem"]', "li")

TABLE_CONTAINER = 'table, [role="table"], [role="grid"]'
TABLE_ROWS = 'tbody tr, [role="row"]:not(:has([role="columnheader"])):not(:first-child)'
TABLE_CELLS = 'td, [role="cell"], [role="gridcell"]'
# Header locators tried in order until one matches.
TABLE_HEADER_FALLBACKS = (
    "thead th, thead td",
    '[role="columnheader"]',
    "table tr:first-child th, table tr:first-child td",
    '[role="row"]:first-child [role="cell"], [role="row"]:first-child [role="gridcell"]',
)
LOADING_INDICATOR = (
    '[class*="loading"], [class*="spinner"], [class*="skeleton"], [data-loading="true"]'
)
SCROLL_CANDIDATES = (
    '[style*="overflow"][style*="auto"], [style*="overflow"][style*="scroll"], '
    '[class*="scroll"], [class*="virtual"], [class*="table-container"], '
    '[class*="tableContainer"], [class*="table-wrapper"]'
)
SCROLL_MARKER = "data-scraper-scroll"

# Logged-in indicators.
SEARCH_PLACEHOLDER = "Search Players or Teams"
