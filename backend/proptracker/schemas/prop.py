"""Prop schema definitions."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class AvailableDate(BaseModel):
    date_iso: str
    categories_count: int
    rows_count: int
    scraped_at: Optional[datetime] = None


class CategoryCount(BaseModel):
    key: str
    label: str
    count: int


class PropRow(BaseModel):
    id: str
    run_id: str
    date_iso: str
    category_key: str
    category_label: str
    player_name: str
    team: Optional[str] = None
    status: Optional[str] = None
    line: Optional[float] = None
    odds_over: Optional[int] = None
    odds_under: Optional[int] = None
    projection: Optional[float] = None
    diff: Optional[float] = None
    rank_metric: Optional[str] = None
    hit_rates: Optional[Dict[str, Optional[float]]] = None
    raw: Dict[str, str] = {}

    class Config:
        from_attributes = True


class PropRowsResponse(BaseModel):
    date_iso: str
    category_key: Optional[str] = None
    order_by: str
    count: int
    rows: List[PropRow]
