"""Read-only queries over persisted prop rows."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from proptracker.core.config import settings
from proptracker.db import models

logger = logging.getLogger(__name__)

MAX_ROWS = 2_000

ORDERINGS = {
    "player": (models.PropRow.player_name.asc(),),
    "line": (models.PropRow.line.desc().nulls_last(), models.PropRow.player_name.asc()),
    "diff": (models.PropRow.diff.desc().nulls_last(), models.PropRow.player_name.asc()),
    "projection": (
        models.PropRow.projection.desc().nulls_last(),
        models.PropRow.player_name.asc(),
    ),
    "rank_metric": (
        models.PropRow.rank_metric.asc().nulls_last(),
        models.PropRow.player_name.asc(),
    ),
}


def _parse_date(date_iso: str) -> date:
    try:
        return date.fromisoformat(date_iso)
    except ValueError as exc:
        raise ValueError(f"Invalid date {date_iso!r}; expected YYYY-MM-DD") from exc


def _row_to_dict(row: models.PropRow) -> Dict:
    return {
        "id": str(row.id),
        "run_id": str(row.run_id),
        "date_iso": row.date_iso.isoformat(),
        "category_key": row.category_key,
        "category_label": row.category_label,
        "player_name": row.player_name,
        "team": row.team,
        "status": row.status,
        "line": row.line,
        "odds_over": row.odds_over,
        "odds_under": row.odds_under,
        "projection": row.projection,
        "diff": row.diff,
        "rank_metric": row.rank_metric,
        "hit_rates": row.hit_rates,
        "raw": row.raw or {},
    }


@dataclass
class PropQueryService:
    db: Session
    sport: str = settings.SPORT

    def get_available_dates(self, limit: int = 30) -> List[Dict]:
        """Dates that have rows, newest first."""
        stmt = (
            select(
                models.PropRow.date_iso,
                func.count(func.distinct(models.PropRow.category_key)),
                func.count(models.PropRow.id),
                func.max(models.ScrapeRun.finished_at),
            )
            .join(models.ScrapeRun, models.ScrapeRun.id == models.PropRow.run_id)
            .where(models.PropRow.sport == self.sport)
            .group_by(models.PropRow.date_iso)
            .order_by(models.PropRow.date_iso.desc())
            .limit(limit)
        )
        return [
            {
                "date_iso": day.isoformat(),
                "categories_count": categories,
                "rows_count": rows,
                "scraped_at": scraped_at,
            }
            for day, categories, rows, scraped_at in self.db.execute(stmt).all()
        ]

    def get_categories_for_date(self, date_iso: str) -> List[Dict]:
        day = _parse_date(date_iso)
        label = func.max(models.PropRow.category_label)
        stmt = (
            select(models.PropRow.category_key, label, func.count(models.PropRow.id))
            .where(models.PropRow.sport == self.sport, models.PropRow.date_iso == day)
            .group_by(models.PropRow.category_key)
            .order_by(label)
        )
        return [
            {"key": key, "label": category_label, "count": count}
            for key, category_label, count in self.db.execute(stmt).all()
        ]

    def query_rows(
        self,
        date_iso: str,
        category_key: Optional[str] = None,
        player_search: Optional[str] = None,
        order_by: str = "player",
        limit: int = 500,
    ) -> List[Dict]:
        """Rows for one date.

        Raises:
            ValueError: unknown ``order_by`` or malformed date.
        """
        if order_by not in ORDERINGS:
            raise ValueError(
                f"Unsupported order_by {order_by!r}; expected one of {', '.join(ORDERINGS)}"
            )
        day = _parse_date(date_iso)
        limit = max(1, min(limit, MAX_ROWS))

        stmt = select(models.PropRow).where(
            models.PropRow.sport == self.sport, models.PropRow.date_iso == day
        )
        if category_key:
            stmt = stmt.where(models.PropRow.category_key == category_key)
        if player_search and player_search.strip():
            needle = player_search.strip().lower()
            stmt = stmt.where(
                func.lower(models.PropRow.player_name).contains(needle, autoescape=True)
            )
        stmt = stmt.order_by(*ORDERINGS[order_by]).limit(limit)

        return [_row_to_dict(row) for row in self.db.execute(stmt).scalars().all()]
