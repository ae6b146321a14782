# tests/test_export.py

import csv
import json

import pytest

from data_pipeline.etl.export import LEADING_COLUMNS, ArtifactWriter, rows_to_frame
from data_pipeline.etl.records import CategoryOption, CategoryResult, PropRow, ScrapeSession

DATE = "2026-01-15"


def _row(**overrides) -> PropRow:
    values = dict(
        category_key="points",
        category_label="Points",
        date_iso=DATE,
        player_name="Jane Doe",
        team="BOS",
        line=25.0,
        odds_over=-110,
        odds_under=None,
        projection=27.25,
        hit_rates={"L5": 60, "H2H": None},
        raw={"Player": "Jane Doe\nBOS | PG", "Line": "25"},
    )
    values.update(overrides)
    return PropRow(**values)


def _read_csv(path):
    with path.open(newline="", encoding="utf-8") as handle:
        return list(csv.reader(handle))


class TestCsvExport:
    """Delimited export layout and quoting."""

    @pytest.fixture
    def writer(self, tmp_path):
        return ArtifactWriter(tmp_path, DATE)

    def test_column_order(self):
        rows = [_row(), _row(player_name="John Smith", hit_rates={"L10": 50, "25/26": 48})]
        columns = list(rows_to_frame(rows).columns)
        assert columns[: len(LEADING_COLUMNS)] == LEADING_COLUMNS
        assert columns[len(LEADING_COLUMNS) :] == [
            "hit_rate_25/26",
            "hit_rate_H2H",
            "hit_rate_L10",
            "hit_rate_L5",
            "raw_json",
        ]

    def test_values_rendered_as_text(self, writer):
        result = CategoryResult("points", "Points", [_row()], 1, 5)
        paths = writer.write_category(result)
        header, record = _read_csv(paths["csv"])
        values = dict(zip(header, record))

        assert values["line"] == "25"
        assert values["odds_over"] == "-110"
        assert values["odds_under"] == ""
        assert values["projection"] == "27.25"
        assert values["hit_rate_L5"] == "60"
        assert values["hit_rate_H2H"] == ""
        assert json.loads(values["raw_json"]) == {"Player": "Jane Doe\nBOS | PG", "Line": "25"}

    def test_quoting(self, writer):
        row = _row(player_name='Smith, "JJ"', status="line1\nline2")
        paths = writer.write_category(CategoryResult("points", "Points", [row], 1, 5))
        text = paths["csv"].read_text(encoding="utf-8")

        assert '"Smith, ""JJ"""' in text
        assert '"line1\nline2"' in text
        header, record = _read_csv(paths["csv"])
        assert record[0] == 'Smith, "JJ"'

    def test_empty_category_writes_header_only(self, writer):
        paths = writer.write_category(CategoryResult("points", "Points", [], 0, 5))
        assert _read_csv(paths["csv"]) == [LEADING_COLUMNS + ["raw_json"]]


class TestJsonArtifacts:

    def test_category_and_session_files(self, tmp_path):
        writer = ArtifactWriter(tmp_path, DATE, sport="nba")
        result = CategoryResult("points", "Points", [_row()], 1, 5)
        writer.write_category(result)

        session = ScrapeSession(date_iso=DATE)
        session.add_result(result)
        session.add_error(CategoryOption("Assists"), "Failed after 3 attempts: boom")
        path = writer.write_session(session.finalize(attempted=2))

        assert path == tmp_path / DATE / "nba_all_props.json"
        payload = json.loads(path.read_text())
        assert payload["artifact_dir"] == str(tmp_path / DATE)
        assert payload["errors"] == [
            {"category_key": "assists", "category_label": "Assists", "error": "Failed after 3 attempts: boom"}
        ]
        category = json.loads((tmp_path / DATE / "nba_points.json").read_text())
        assert category["row_count"] == 1
        assert category["rows"][0]["hit_rates"] == {"L5": 60, "H2H": None}


class TestDebugArtifacts:

    async def test_unwritable_debug_directory_is_only_logged(self, tmp_path):
        writer = ArtifactWriter(tmp_path, DATE)
        writer.debug_directory.write_text("not a directory")

        assert await writer.save_debug(object(), "success", "points") is None
