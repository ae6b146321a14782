"""Transformation of raw table cells into typed prop rows."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from data_pipeline.etl.parsing import parse_line, parse_number, parse_odds
from data_pipeline.etl.records import CategoryOption, PropRow

# Header -> field, first match wins.
HEADER_FIELDS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"^player$|^name$", re.I), "player_name"),
    (re.compile(r"^team$", re.I), "team"),
    (re.compile(r"^opp|^opponent|^vs\.?$", re.I), "opponent"),
    (re.compile(r"^l$|^line$|^o/u$", re.I), "line"),
    (re.compile(r"^over$|^o$|^odds?\s*over$", re.I), "odds_over"),
    (re.compile(r"^under$|^u$|^odds?\s*under$", re.I), "odds_under"),
    (re.compile(r"^stk$|^streak$", re.I), "streak"),
    (re.compile(r"^proj$|^projection$", re.I), "projection"),
    (re.compile(r"^diff$|^edge$", re.I), "diff"),
    (re.compile(r"^dvp$|^dvp\s*rank$", re.I), "rank_metric"),
    (re.compile(r"^status$|^inj", re.I), "status"),
]

# Rolling-window / hit-rate period headers -> canonical period label.
HIT_RATE_PERIODS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"25.?26", re.I), "25/26"),
    (re.compile(r"24.?25", re.I), "24/25"),
    (re.compile(r"h2h", re.I), "H2H"),
    (re.compile(r"^l5$|last\s*5\b", re.I), "L5"),
    (re.compile(r"^l10$|last\s*10\b", re.I), "L10"),
    (re.compile(r"^l15$|last\s*15\b", re.I), "L15"),
    (re.compile(r"^l20$|last\s*20\b", re.I), "L20"),
    (re.compile(r"^l30$|last\s*30\b", re.I), "L30"),
]

STATUS_CODES = ("OUT", "GTD", "DTD", "DOUBT", "PROB", "QUES", "SUSP", "INJ")

_TEAM_WITH_POSITION = re.compile(r"^([A-Z]{2,4})\s*\|\s*\w{1,3}")
_BARE_TEAM = re.compile(r"^[A-Z]{2,4}$")
_STATUS = re.compile(r"\b(" + "|".join(STATUS_CODES) + r")\b", re.I)
_NUMERIC_LEADING = re.compile(r"^[+\-−]?\.?\d")


@dataclass(frozen=True)
class RowContext:
    category_key: str
    category_label: str
    date_iso: str

    @classmethod
    def for_option(cls, option: CategoryOption, date_iso: str) -> "RowContext":
        return cls(option.key, option.label, date_iso)


@dataclass
class PlayerCell:
    player_name: str
    team: Optional[str] = None
    status: Optional[str] = None


def classify_header(header: str) -> Optional[str]:
    text = header.strip()
    for pattern, field_name in HEADER_FIELDS:
        if pattern.search(text):
            return field_name
    return None


def classify_hit_rate(header: str) -> Optional[str]:
    text = header.strip()
    for pattern, period in HIT_RATE_PERIODS:
        if pattern.search(text):
            return period
    return None


def parse_player_cell(text: str) -> PlayerCell:
    """Split a composite player cell.

    Observed layouts::

        "Scotty Pippen Jr.\\nMEM | PG\\nOUT"
        "Kevin Durant\\nHOU | PF"

    Line 1 is the name; later lines may carry ``TEAM | POS``, a bare team code
    or a status tag. Anything else is ignored.
    """
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    cell = PlayerCell(player_name=lines[0] if lines else text.strip())

    for line in lines[1:]:
        team_match = _TEAM_WITH_POSITION.match(line)
        if team_match:
            cell.team = team_match.group(1)
            continue
        status_match = _STATUS.search(line)
        if status_match:
            cell.status = status_match.group(1).upper()
            continue
        if _BARE_TEAM.match(line):
            cell.team = line

    cell.player_name = re.sub(r"\s{2,}", " ", cell.player_name).strip()
    return cell


def is_numeric_leading(text: str) -> bool:
    return bool(_NUMERIC_LEADING.match(text.strip()))


@dataclass
class RowNormalizer:
    """Map an arbitrary header/cell grid onto ``PropRow``."""

    def normalize(
        self, headers: Sequence[str], cells: Sequence[str], context: RowContext
    ) -> Optional[PropRow]:
        if not cells:
            return None

        raw: Dict[str, str] = {}
        mapped: Dict[str, str] = {}
        hit_rates: Dict[str, Optional[float]] = {}

        for header, value in zip(headers, cells):
            if not header:
                continue
            raw[header] = value
            field_name = classify_header(header)
            if field_name:
                mapped.setdefault(field_name, value)
                continue
            period = classify_hit_rate(header)
            if period:
                hit_rates[period] = parse_number(value)

        player_text = mapped.get("player_name", "").strip()
        if not player_text:
            player_text = next(
                (c.strip() for c in cells if c.strip() and not is_numeric_leading(c)),
                "",
            )
        if not player_text:
            return None

        player = parse_player_cell(player_text)
        if not player.player_name:
            return None

        return PropRow(
            category_key=context.category_key,
            category_label=context.category_label,
            date_iso=context.date_iso,
            player_name=player.player_name,
            team=mapped.get("team") or player.team,
            status=mapped.get("status") or player.status,
            line=parse_line(mapped.get("line")),
            odds_over=parse_odds(mapped.get("odds_over")),
            odds_under=parse_odds(mapped.get("odds_under")),
            projection=parse_number(mapped.get("projection")),
            diff=parse_number(mapped.get("diff")),
            rank_metric=mapped.get("rank_metric") or None,
            hit_rates=hit_rates or None,
            raw=raw,
        )

    def normalize_many(
        self, headers: Sequence[str], grid: Sequence[Sequence[str]], context: RowContext
    ) -> List[PropRow]:
        """Normalize a grid and drop repeated signatures, keeping first occurrence."""
        seen = set()
        rows: List[PropRow] = []
        for cells in grid:
            row = self.normalize(headers, cells, context)
            if row is None or row.signature in seen:
                continue
            seen.add(row.signature)
            rows.append(row)
        return rows
