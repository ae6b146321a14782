"""Cell text parsing helpers: category keys, lines, odds, numbers and row signatures."""
from __future__ import annotations

import re
from typing import Mapping, Optional, Union

Number = Union[int, float]

UNICODE_MINUS = "−"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_OVER_UNDER_PREFIX = re.compile(r"^(?:over|under|o|u)\s*", re.I)

# Signature fallback uses this many raw values when the typed fields are sparse.
RAW_SIGNATURE_PREFIX = 5


def slugify_category(label: str) -> str:
    """'Pts+Reb+Ast' -> 'pts_reb_ast'."""
    return _NON_ALNUM.sub("_", (label or "").lower()).strip("_")


def _to_number(cleaned: str) -> Optional[Number]:
    if cleaned in ("", "-", "+", "."):
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if "." not in cleaned and value.is_integer():
        return int(value)
    return value


def parse_odds(text: Optional[str]) -> Optional[Number]:
    """Parse American odds like '-110', '+120' or '−110' (Unicode minus).

    Non-numeric odds such as 'EVEN' parse to None.
    """
    if not text:
        return None
    cleaned = text.strip().replace(UNICODE_MINUS, "-")
    cleaned = re.sub(r"[^0-9.+\-]", "", cleaned)
    return _to_number(cleaned)


def parse_line(text: Optional[str]) -> Optional[Number]:
    """Parse a line/total like '25.5', 'O 25.5' or 'U 25.5'."""
    if not text:
        return None
    cleaned = _OVER_UNDER_PREFIX.sub("", text.strip()).replace(UNICODE_MINUS, "-")
    cleaned = re.sub(r"[^0-9.\-]", "", cleaned.replace(",", ""))
    return _to_number(cleaned)


def parse_number(text: Optional[str]) -> Optional[Number]:
    """Parse a general number, stripping %, thousands separators, rank suffixes, etc."""
    if not text:
        return None
    cleaned = (
        text.strip()
        .replace(UNICODE_MINUS, "-")
        .replace("%", "")
        .replace(",", "")
    )
    cleaned = re.sub(r"[^0-9.\-]", "", cleaned)
    return _to_number(cleaned)


def format_number(value: Optional[Number]) -> str:
    """Render a parsed number the same way everywhere ('' for unknown, no trailing .0)."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def make_row_signature(
    category_key: str,
    player_name: Optional[str] = None,
    team: Optional[str] = None,
    line: Optional[Number] = None,
    odds_over: Optional[Number] = None,
    odds_under: Optional[Number] = None,
    raw: Optional[Mapping[str, str]] = None,
) -> str:
    """Identity string for in-memory dedup of one observation.

    Every field keeps its position (empty when unknown) so a missing
    over price never lines up with a missing under price. When only the
    category (and at most one more field) is known, the first few raw
    values, ordered by column header, are appended so rows stay
    distinguishable regardless of column order on the page.
    """
    fields = [player_name or "", team or ""]
    fields.extend(format_number(value) for value in (line, odds_over, odds_under))
    parts = [category_key] + fields

    if sum(1 for field in fields if field) <= 1 and raw:
        ordered = [raw[key] for key in sorted(raw)]
        parts.extend(ordered[:RAW_SIGNATURE_PREFIX])

    return "|".join(parts)
