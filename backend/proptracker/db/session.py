"""Database engine and session management."""
from __future__ import annotations

from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from proptracker.core.config import settings

_engine: Optional[Engine] = None

SessionLocal = sessionmaker(autocommit=False, autoflush=False, future=True)


def is_db_configured() -> bool:
    return bool(settings.DATABASE_URL)


def get_engine(url: Optional[str] = None) -> Engine:
    """Create the pooled engine on first use.

    ``url`` overrides ``settings.DATABASE_URL``; it only matters for the call
    that builds the engine.

    A single writer issues all upserts for one run, so the pool stays small
    and bounded (no overflow by default).
    """
    global _engine
    if _engine is None:
        url = url or settings.DATABASE_URL
        if not url:
            raise RuntimeError("DATABASE_URL is not set. Add it to .env or export it before running.")
        _engine = create_engine(
            url,
            pool_pre_ping=True,  # Verify connections before using
            poolclass=QueuePool,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE,
            echo=False,  # Set to True for SQL query logging
            future=True,
        )
        SessionLocal.configure(bind=_engine)
    return _engine


def dispose_engine() -> None:
    """Close every pooled connection. Safe to call when no engine exists."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None


def get_db() -> Iterator[Session]:
    """Dependency that provides a transactional database session."""
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
