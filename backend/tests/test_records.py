# tests/test_records.py

import pytest

from data_pipeline.etl.records import (
    CategoryOption,
    CategoryResult,
    PropRow,
    ScrapeSession,
)
from helpers import make_rows


def _result(option: CategoryOption, count: int) -> CategoryResult:
    rows = make_rows(count, option)
    return CategoryResult(option.key, option.label, rows, len(rows), duration_ms=10)


class TestCategoryOption:

    def test_key_derived_from_label(self):
        assert CategoryOption("Pts+Reb+Ast").key == "pts_reb_ast"

    def test_key_cannot_be_passed(self):
        with pytest.raises(TypeError):
            CategoryOption("Points", key="other")


class TestPropRow:

    def test_signature_is_derived(self):
        row = make_rows(1, CategoryOption("Points"))[0]
        assert row.signature == "points|Player 0|BOS|10.5|-110|-110"

    def test_signature_cannot_be_passed(self):
        with pytest.raises(TypeError):
            PropRow("points", "Points", "2026-01-15", "Jane Doe", signature="x")


class TestScrapeSession:
    """Session assembly and summary counters."""

    def test_finalize_counts_only_clean_categories(self):
        points, assists = CategoryOption("Points"), CategoryOption("Assists")
        session = ScrapeSession(date_iso="2026-01-15")
        session.add_result(_result(points, 50))
        session.add_error(assists, "Failed after 3 attempts: boom")
        session.finalize(attempted=2)

        assert session.finished_at is not None
        assert session.summary.attempted == 2
        assert session.summary.succeeded == 1
        assert session.summary.rows_total == 50

    def test_result_with_residual_error_is_not_a_success(self):
        points = CategoryOption("Points")
        session = ScrapeSession(date_iso="2026-01-15")
        session.add_result(_result(points, 5))
        session.add_error(points, "late failure")
        session.finalize(attempted=1)

        assert session.summary.succeeded == 0
        assert session.summary.rows_total == 0

    def test_empty_session(self):
        session = ScrapeSession(date_iso="2026-01-15").finalize(attempted=0)
        assert session.summary.attempted == 0
        assert session.all_rows() == []

    def test_to_dict_uses_snake_case(self):
        session = ScrapeSession(date_iso="2026-01-15")
        session.add_result(_result(CategoryOption("Points"), 2))
        payload = session.finalize(attempted=1).to_dict()

        assert set(payload) >= {"date_iso", "started_at", "finished_at", "results", "errors", "summary"}
        assert payload["summary"] == {"attempted": 1, "succeeded": 1, "rows_total": 2}
        first_row = payload["results"][0]["rows"][0]
        assert first_row["player_name"] == "Player 0"
        assert "signature" in first_row
