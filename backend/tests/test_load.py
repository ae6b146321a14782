# tests/test_load.py

import os
import uuid
from typing import Dict, List, Tuple

import pytest
from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from data_pipeline.etl import load
from data_pipeline.etl.load import CHUNK_SIZE, PropLoader, build_upsert, collapse_natural_keys
from data_pipeline.etl.records import CategoryOption, CategoryResult, PropRow, ScrapeSession
from helpers import make_rows
from proptracker.core.errors import PersistenceFailure
from proptracker.db import models
from proptracker.db.base import Base

DATE = "2026-01-15"


def make_session(count: int, labels=("Points",)) -> ScrapeSession:
    session = ScrapeSession(date_iso=DATE)
    for label in labels:
        option = CategoryOption(label)
        rows = make_rows(count, option, DATE)
        session.add_result(CategoryResult(option.key, option.label, rows, len(rows), 10))
    return session.finalize(attempted=len(labels))


class FakeResult:
    def __init__(self, flags: List[bool]) -> None:
        self.flags = flags

    def scalars(self):
        return self

    def all(self):
        return self.flags


class FakeSession:
    """Applies upsert values to a dict keyed like the natural-key index."""

    def __init__(self) -> None:
        self.store: Dict[Tuple, dict] = {}
        self.added = []
        self.chunk_sizes: List[int] = []
        self.commits = 0
        self.rollbacks = 0
        self.fail = False

    def add(self, obj) -> None:
        self.added.append(obj)

    def flush(self) -> None:
        pass

    def execute(self, values):
        if self.fail:
            raise OperationalError("INSERT INTO prop_rows", {}, Exception("connection refused"))
        self.chunk_sizes.append(len(values))
        flags = []
        for value in values:
            key = tuple(
                models.NULL_SENTINEL if value[name] is None else value[name]
                for name in ("sport", "date_iso", "category_key", "player_name", "line", "odds_over", "odds_under")
            )
            flags.append(key not in self.store)
            self.store[key] = value
        return FakeResult(flags)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


@pytest.fixture
def fake_db(monkeypatch):
    monkeypatch.setattr(load, "build_upsert", lambda values: values)
    return FakeSession()


class TestPropLoader:
    """Run insert, chunked upsert and insert/update accounting."""

    def test_chunks_under_parameter_ceiling(self, fake_db):
        result = PropLoader(fake_db).persist_session(make_session(1_200))

        assert fake_db.chunk_sizes == [500, 500, 200]
        assert result.rows_inserted == 1_200
        assert result.rows_updated == 0
        assert result.rows_persisted == 1_200
        assert fake_db.commits == 1

    def test_second_run_updates_everything(self, fake_db):
        loader = PropLoader(fake_db, chunk_size=250)
        first = loader.persist_session(make_session(300))
        second = loader.persist_session(make_session(300))

        assert first.rows_inserted == 300
        assert second.rows_inserted == 0
        assert second.rows_updated == 300
        assert len(fake_db.store) == 300
        assert first.run_id != second.run_id
        assert all(str(v["run_id"]) == second.run_id for v in fake_db.store.values())

    def test_run_record(self, fake_db):
        session = make_session(3, labels=("Points", "Assists"))
        session.add_error(CategoryOption("Steals"), "Failed after 3 attempts: boom")
        PropLoader(fake_db, sport="nba", source="props.cash").persist_session(session)

        run = fake_db.added[0]
        assert isinstance(run, models.ScrapeRun)
        assert run.categories_attempted == 2
        assert run.rows_total == 6
        assert run.errors == [
            {"category_key": "steals", "category_label": "Steals", "error": "Failed after 3 attempts: boom"}
        ]
        assert str(run.date_iso) == DATE

    def test_zero_rows_is_valid(self, fake_db):
        result = PropLoader(fake_db).persist_session(make_session(0))
        assert (result.rows_persisted, result.rows_inserted, result.rows_updated) == (0, 0, 0)
        assert len(fake_db.added) == 1
        assert fake_db.chunk_sizes == []
        assert fake_db.commits == 1

    def test_failure_rolls_back(self, fake_db):
        fake_db.fail = True
        with pytest.raises(PersistenceFailure) as excinfo:
            PropLoader(fake_db).persist_session(make_session(2))
        assert isinstance(excinfo.value.__cause__, OperationalError)
        assert fake_db.rollbacks == 1
        assert fake_db.commits == 0

    def test_chunk_size_validated(self):
        with pytest.raises(ValueError):
            PropLoader(FakeSession(), chunk_size=10_000)
        assert CHUNK_SIZE * len(load.UPSERT_COLUMNS) < load.POSTGRES_PARAM_LIMIT


class TestNaturalKeyCollapse:

    def test_last_row_wins(self):
        option = CategoryOption("Points")
        first = PropRow(option.key, option.label, DATE, "Jane Doe", team="BOS", line=25.5)
        second = PropRow(option.key, option.label, DATE, "Jane Doe", team="NYK", line=25.5)
        assert collapse_natural_keys([first, second]) == [second]

    def test_missing_lines_share_one_slot(self):
        # Known lossy case: two distinct "no line" rows for one player merge.
        option = CategoryOption("Points")
        first = PropRow(option.key, option.label, DATE, "Jane Doe", status="OUT")
        second = PropRow(option.key, option.label, DATE, "Jane Doe", status="GTD")
        assert len(collapse_natural_keys([first, second])) == 1

    def test_distinct_lines_kept(self):
        option = CategoryOption("Points")
        rows = [
            PropRow(option.key, option.label, DATE, "Jane Doe", line=24.5),
            PropRow(option.key, option.label, DATE, "Jane Doe", line=25.5),
        ]
        assert len(collapse_natural_keys(rows)) == 2


class TestUpsertStatement:
    """The statement as Postgres will see it."""

    @pytest.fixture
    def sql(self):
        loader = PropLoader(FakeSession())
        values = loader._row_values(uuid.uuid4(), make_rows(2, CategoryOption("Points"), DATE))
        compiled = build_upsert(values).compile(dialect=postgresql.dialect())
        return " ".join(str(compiled).split())

    def test_conflict_target_is_natural_key(self, sql):
        target = sql.split("ON CONFLICT", 1)[1].split("DO UPDATE", 1)[0].lower()
        for column in ("sport", "date_iso", "category_key", "player_name"):
            assert column in target
        for column in ("line", "odds_over", "odds_under"):
            assert f"coalesce({column}, -999)" in target

    def test_only_mutable_columns_updated(self, sql):
        set_clause = sql.split("DO UPDATE SET", 1)[1].split("RETURNING", 1)[0]
        for column in models.MUTABLE_COLUMNS:
            assert f"{column} = excluded.{column}" in set_clause
        for column in ("sport", "date_iso", "category_key", "player_name", "line", "odds_over"):
            assert f" {column} = excluded" not in f" {set_clause}"

    def test_returns_insert_flag(self, sql):
        assert sql.endswith("RETURNING (xmax = 0) AS was_inserted")


@pytest.mark.skipif(
    not os.environ.get("PROPS_TEST_DATABASE_URL"),
    reason="PROPS_TEST_DATABASE_URL not set",
)
class TestPostgresIdempotence:
    """Round trip against a real Postgres database."""

    SPORT = "pytest"

    @pytest.fixture
    def pg_session(self):
        engine = create_engine(os.environ["PROPS_TEST_DATABASE_URL"], future=True)
        Base.metadata.create_all(engine)
        db = sessionmaker(bind=engine, future=True)()
        try:
            yield db
        finally:
            db.execute(delete(models.ScrapeRun).where(models.ScrapeRun.sport == self.SPORT))
            db.commit()
            db.close()
            engine.dispose()

    def _count(self, db) -> int:
        stmt = select(func.count(models.PropRow.id)).where(models.PropRow.sport == self.SPORT)
        return db.execute(stmt).scalar_one()

    def test_second_persist_only_updates(self, pg_session):
        loader = PropLoader(pg_session, sport=self.SPORT)
        session = make_session(40, labels=("Points", "Assists"))

        first = loader.persist_session(session)
        count_after_first = self._count(pg_session)
        second = loader.persist_session(session)

        assert first.rows_inserted == 80
        assert second.rows_inserted == 0
        assert second.rows_updated == 80
        assert self._count(pg_session) == count_after_first == 80
