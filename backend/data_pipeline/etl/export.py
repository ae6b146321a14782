"""File artifacts for one scrape run: per-category JSON/CSV, combined session JSON, debug dumps."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from data_pipeline.etl.parsing import format_number
from data_pipeline.etl.records import CategoryResult, PropRow, ScrapeSession

logger = logging.getLogger(__name__)

LEADING_COLUMNS = [
    "player_name",
    "team",
    "status",
    "line",
    "odds_over",
    "odds_under",
    "projection",
    "diff",
    "rank_metric",
]
HIT_RATE_PREFIX = "hit_rate_"
RAW_COLUMN = "raw_json"


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


def hit_rate_periods(rows: Sequence[PropRow]) -> List[str]:
    periods = set()
    for row in rows:
        periods.update((row.hit_rates or {}).keys())
    return sorted(periods)


def rows_to_frame(rows: Sequence[PropRow]) -> pd.DataFrame:
    """Tabular export of one category.

    Every value is already rendered to text so integral numbers never pick up
    a trailing ``.0`` from pandas' float columns.
    """
    periods = hit_rate_periods(rows)
    columns = LEADING_COLUMNS + [HIT_RATE_PREFIX + p for p in periods] + [RAW_COLUMN]

    records = []
    for row in rows:
        record = {name: _cell(getattr(row, name)) for name in LEADING_COLUMNS}
        hit_rates = row.hit_rates or {}
        for period in periods:
            record[HIT_RATE_PREFIX + period] = _cell(hit_rates.get(period))
        record[RAW_COLUMN] = json.dumps(row.raw, ensure_ascii=False)
        records.append(record)

    return pd.DataFrame(records, columns=columns, dtype=str)


class ArtifactWriter:
    """Writes into ``<root>/<date_iso>/``."""

    def __init__(self, root: str | Path, date_iso: str, sport: str = "nba") -> None:
        self.directory = Path(root) / date_iso
        self.sport = sport
        self.directory.mkdir(parents=True, exist_ok=True)

    @property
    def debug_directory(self) -> Path:
        return self.directory / "debug"

    def _write_json(self, path: Path, payload: Dict[str, Any]) -> Path:
        with path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
        return path

    def write_category(self, result: CategoryResult) -> Dict[str, Path]:
        stem = f"{self.sport}_{result.category_key}"
        json_path = self._write_json(self.directory / f"{stem}.json", result.to_dict())
        csv_path = self.directory / f"{stem}.csv"
        rows_to_frame(result.rows).to_csv(csv_path, index=False, lineterminator="\n")
        logger.debug(f"Wrote {result.row_count} rows to {csv_path}")
        return {"json": json_path, "csv": csv_path}

    def write_session(self, session: ScrapeSession) -> Path:
        session.artifact_dir = str(self.directory)
        path = self._write_json(self.directory / f"{self.sport}_all_props.json", session.to_dict())
        logger.info(f"Wrote combined session to {path}")
        return path

    async def save_debug(self, page, prefix: str, key: Optional[str] = None) -> Optional[Path]:
        """Screenshot and HTML dump of the current page; failures are only logged."""
        stem = "_".join(part for part in (prefix, self.sport, key) if part)
        base = self.debug_directory / stem
        try:
            self.debug_directory.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(base.with_suffix(".png")), full_page=True)
            base.with_suffix(".html").write_text(await page.content(), encoding="utf-8")
        except Exception as exc:
            logger.warning(f"Could not save debug artifacts for {stem}: {exc}")
            return None
        return base
