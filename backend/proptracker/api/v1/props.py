"""Prop query endpoints."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from proptracker.db.session import get_db
from proptracker.schemas.prop import AvailableDate, CategoryCount, PropRowsResponse
from proptracker.services.prop_service import MAX_ROWS, PropQueryService

router = APIRouter()


@router.get("/dates", response_model=List[AvailableDate])
async def list_dates(
    response: Response,
    limit: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
) -> List[AvailableDate]:
    """Dates with stored props, newest first."""
    service = PropQueryService(db)
    response.headers["Cache-Control"] = "public, max-age=300"
    return service.get_available_dates(limit=limit)


@router.get("/{date_iso}/categories", response_model=List[CategoryCount])
async def list_categories(date_iso: str, db: Session = Depends(get_db)) -> List[CategoryCount]:
    service = PropQueryService(db)
    try:
        return service.get_categories_for_date(date_iso)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/{date_iso}/rows", response_model=PropRowsResponse)
async def list_rows(
    date_iso: str,
    category: Optional[str] = None,
    player: Optional[str] = None,
    order_by: str = "player",
    limit: int = Query(500, ge=1),
    db: Session = Depends(get_db),
) -> PropRowsResponse:
    """Rows for one date. ``limit`` is capped server-side."""
    service = PropQueryService(db)
    try:
        rows = service.query_rows(
            date_iso,
            category_key=category,
            player_search=player,
            order_by=order_by,
            limit=min(limit, MAX_ROWS),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "date_iso": date_iso,
        "category_key": category,
        "order_by": order_by,
        "count": len(rows),
        "rows": rows,
    }
