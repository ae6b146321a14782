# tests/conftest.py

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from data_pipeline.etl.transform import RowContext
from proptracker.db import models  # noqa: F401
from proptracker.db.base import Base


@pytest.fixture
def context() -> RowContext:
    return RowContext("points", "Points", "2026-01-15")


@pytest.fixture
def sqlite_session():
    """In-memory SQLite session with the full schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    db = Session()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()
