"""Loading utilities for persisting scrape sessions into the database."""
from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import literal_column
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from data_pipeline.etl.records import PropRow, ScrapeSession
from proptracker.core.errors import PersistenceFailure
from proptracker.core.logging import get_logger
from proptracker.db import models

logger = get_logger(__name__)

POSTGRES_PARAM_LIMIT = 65_535
# 500 rows x 18 bound columns stays far below the parameter ceiling.
CHUNK_SIZE = 500
UPSERT_COLUMNS = (
    "id",
    "run_id",
    "sport",
    "date_iso",
    "category_key",
    "category_label",
    "player_name",
    "team",
    "status",
    "line",
    "odds_over",
    "odds_under",
    "projection",
    "diff",
    "rank_metric",
    "hit_rates",
    "raw",
    "row_signature",
)


@dataclass
class PersistResult:
    run_id: str
    rows_persisted: int
    rows_inserted: int
    rows_updated: int
    duration_ms: int


def _key_value(value: Any) -> Any:
    return models.NULL_SENTINEL if value is None else value


def natural_key(row: PropRow) -> Tuple:
    """In-memory mirror of the unique index on ``prop_rows``."""
    return (
        row.date_iso,
        row.category_key,
        row.player_name,
        _key_value(row.line),
        _key_value(_as_int(row.odds_over)),
        _key_value(_as_int(row.odds_under)),
    )


def collapse_natural_keys(rows: Sequence[PropRow]) -> List[PropRow]:
    """Keep one row per natural key, the last one seen.

    Postgres rejects an ``ON CONFLICT DO UPDATE`` statement that would touch
    the same target row twice.
    """
    latest: Dict[Tuple, PropRow] = {}
    for row in rows:
        latest[natural_key(row)] = row
    return list(latest.values())


def _as_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    return int(value)


def build_upsert(values: List[Dict[str, Any]]):
    """``INSERT ... ON CONFLICT (natural key) DO UPDATE ... RETURNING was_inserted``.

    ``xmax = 0`` only holds for tuples created by this statement, which is
    how inserted rows are told apart from updated ones.
    """
    stmt = pg_insert(models.PropRow.__table__).values(values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(models.NATURAL_KEY),
        set_={name: stmt.excluded[name] for name in models.MUTABLE_COLUMNS},
    )
    return stmt.returning(literal_column("(xmax = 0)").label("was_inserted"))


def _parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(value)


@dataclass
class PropLoader:
    db: Session
    sport: str = "nba"
    source: str = "props.cash"
    chunk_size: int = CHUNK_SIZE

    def __post_init__(self) -> None:
        if self.chunk_size < 1 or self.chunk_size * len(UPSERT_COLUMNS) >= POSTGRES_PARAM_LIMIT:
            raise ValueError(f"chunk_size {self.chunk_size} exceeds the bind parameter limit")

    def persist_session(self, session: ScrapeSession) -> PersistResult:
        """Write one run and upsert all of its rows in a single transaction.

        Raises:
            PersistenceFailure: the store was unreachable or rejected a write.
                The transaction is rolled back.
        """
        started = time.monotonic()
        try:
            run = self._insert_run(session)
            rows = collapse_natural_keys(session.all_rows())
            inserted = updated = 0
            for chunk in self._chunks(rows):
                flags = self.db.execute(build_upsert(self._row_values(run.id, chunk))).scalars().all()
                chunk_inserted = sum(1 for flag in flags if flag)
                inserted += chunk_inserted
                updated += len(flags) - chunk_inserted
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceFailure(f"Failed to persist scrape session: {exc}") from exc

        result = PersistResult(
            run_id=str(run.id),
            rows_persisted=inserted + updated,
            rows_inserted=inserted,
            rows_updated=updated,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        logger.info("rows_upserted", **asdict(result))
        return result

    def _insert_run(self, session: ScrapeSession) -> models.ScrapeRun:
        run = models.ScrapeRun(
            id=uuid.uuid4(),
            sport=self.sport,
            date_iso=date.fromisoformat(session.date_iso),
            started_at=_parse_timestamp(session.started_at),
            finished_at=_parse_timestamp(session.finished_at),
            categories_attempted=session.summary.attempted,
            categories_succeeded=session.summary.succeeded,
            rows_total=session.summary.rows_total,
            errors=[asdict(error) for error in session.errors],
            source=self.source,
        )
        self.db.add(run)
        self.db.flush()
        return run

    def _chunks(self, rows: List[PropRow]) -> Iterator[List[PropRow]]:
        for start in range(0, len(rows), self.chunk_size):
            yield rows[start : start + self.chunk_size]

    def _row_values(self, run_id: uuid.UUID, rows: Sequence[PropRow]) -> List[Dict[str, Any]]:
        return [
            {
                "id": uuid.uuid4(),
                "run_id": run_id,
                "sport": self.sport,
                "date_iso": date.fromisoformat(row.date_iso),
                "category_key": row.category_key,
                "category_label": row.category_label,
                "player_name": row.player_name,
                "team": row.team,
                "status": row.status,
                "line": row.line,
                "odds_over": _as_int(row.odds_over),
                "odds_under": _as_int(row.odds_under),
                "projection": row.projection,
                "diff": row.diff,
                "rank_metric": row.rank_metric,
                "hit_rates": row.hit_rates,
                "raw": row.raw,
                "row_signature": row.signature,
            }
            for row in rows
        ]
