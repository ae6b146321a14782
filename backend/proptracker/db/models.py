"""Database models for scrape runs and the prop rows they produced."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    func,
    literal_column,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from proptracker.db.base import Base

# Stand-in for NULL line/odds inside the natural key. Two rows for the same
# player that both lack a line collapse into one slot; this is lossy.
NULL_SENTINEL = -999

JsonType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


def coalesced(column):
    """``COALESCE(column, -999)`` as used by the natural-key index."""
    return func.coalesce(column, literal_column(str(NULL_SENTINEL)))


class ScrapeRun(Base):
    __tablename__ = "scrape_runs"
    __table_args__ = (
        Index("idx_scrape_runs_date", "sport", "date_iso"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sport: Mapped[str] = mapped_column(String, nullable=False, default="nba")
    date_iso: Mapped[date] = mapped_column(Date, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    categories_attempted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    categories_succeeded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rows_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list] = mapped_column(JsonType, nullable=False, default=list)
    source: Mapped[str] = mapped_column(String, nullable=False, default="props.cash")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    rows: Mapped[List["PropRow"]] = relationship(
        "PropRow", back_populates="run", cascade="all, delete-orphan", passive_deletes=True
    )


class PropRow(Base):
    __tablename__ = "prop_rows"
    __table_args__ = (
        Index("idx_prop_rows_date_category", "sport", "date_iso", "category_key"),
        Index("idx_prop_rows_player", "player_name"),
        Index("idx_prop_rows_run", "run_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    run_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("scrape_runs.id", ondelete="CASCADE"), nullable=False
    )
    sport: Mapped[str] = mapped_column(String, nullable=False, default="nba")
    date_iso: Mapped[date] = mapped_column(Date, nullable=False)
    category_key: Mapped[str] = mapped_column(String, nullable=False)
    category_label: Mapped[str] = mapped_column(String, nullable=False)
    player_name: Mapped[str] = mapped_column(String, nullable=False)
    team: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    line: Mapped[Optional[float]] = mapped_column(Numeric(asdecimal=False), nullable=True)
    odds_over: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    odds_under: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    projection: Mapped[Optional[float]] = mapped_column(Numeric(asdecimal=False), nullable=True)
    diff: Mapped[Optional[float]] = mapped_column(Numeric(asdecimal=False), nullable=True)
    rank_metric: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    hit_rates: Mapped[Optional[dict]] = mapped_column(JsonType, nullable=True)
    raw: Mapped[dict] = mapped_column(JsonType, nullable=False, default=dict)
    row_signature: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    run: Mapped[ScrapeRun] = relationship("ScrapeRun", back_populates="rows")


# Natural key used for idempotent re-ingestion of one date/category.
NATURAL_KEY = (
    PropRow.sport,
    PropRow.date_iso,
    PropRow.category_key,
    PropRow.player_name,
    coalesced(PropRow.line),
    coalesced(PropRow.odds_over),
    coalesced(PropRow.odds_under),
)

Index("uq_prop_rows_natural_key", *NATURAL_KEY, unique=True)

# Overwritten on conflict; natural-key columns are left untouched.
MUTABLE_COLUMNS = (
    "run_id",
    "category_label",
    "team",
    "status",
    "projection",
    "diff",
    "rank_metric",
    "hit_rates",
    "raw",
    "row_signature",
)
