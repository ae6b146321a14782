# tests/test_parsing.py

import pytest

from data_pipeline.etl.parsing import (
    format_number,
    make_row_signature,
    parse_line,
    parse_number,
    parse_odds,
    slugify_category,
)


class TestNumericParsing:
    """Tolerant parsing of odds, lines and general numbers."""

    def test_unicode_minus_odds(self):
        assert parse_odds("−110") == -110

    def test_plus_odds(self):
        assert parse_odds("+120") == 120

    @pytest.mark.parametrize("text", ["", None, "-", "+", "EVEN"])
    def test_unknown_odds_are_none_not_zero(self, text):
        assert parse_odds(text) is None

    def test_over_marker_stripped_from_line(self):
        assert parse_line("O 25.5") == pytest.approx(25.5)
        assert parse_line("u3.5") == pytest.approx(3.5)
        assert parse_line("Over 10") == 10

    def test_thousands_separator(self):
        assert parse_number("12,345") == 12345

    def test_percent(self):
        assert parse_number("47%") == 47

    def test_sign_only_number_is_none(self):
        assert parse_number("-") is None
        assert parse_line("") is None

    def test_integral_values_stay_integers(self):
        assert isinstance(parse_number("47%"), int)
        assert isinstance(parse_line("25.5"), float)

    def test_format_number(self):
        assert format_number(None) == ""
        assert format_number(25.0) == "25"
        assert format_number(25.5) == "25.5"
        assert format_number(-110) == "-110"


class TestCategorySlug:

    def test_combo_label(self):
        assert slugify_category("Pts+Reb+Ast") == "pts_reb_ast"

    def test_deterministic(self):
        assert slugify_category("3PM Made") == slugify_category("3PM Made")

    def test_separator_runs_collapse_and_trim(self):
        assert slugify_category("  Pts + Ast  ") == "pts_ast"

    def test_distinct_vocabulary_does_not_collide(self):
        labels = ["Points", "Assists", "Rebounds", "Pts+Reb+Ast", "Pts+Reb", "Pts+Ast", "Reb+Ast", "3PM"]
        keys = {slugify_category(label) for label in labels}
        assert len(keys) == len(labels)


class TestRowSignature:

    def test_full_signature(self):
        signature = make_row_signature(
            "points", player_name="Jane Doe", team="BOS", line=25.5, odds_over=-110, odds_under=-110
        )
        assert signature == "points|Jane Doe|BOS|25.5|-110|-110"

    def test_missing_fields_keep_their_position(self):
        over_only = make_row_signature("points", "Jane Doe", "BOS", 25.5, odds_over=-110)
        under_only = make_row_signature("points", "Jane Doe", "BOS", 25.5, odds_under=-110)
        assert over_only == "points|Jane Doe|BOS|25.5|-110|"
        assert over_only != under_only

    def test_same_fields_same_signature(self):
        first = make_row_signature("points", "Jane Doe", "BOS", 25.5, -110, -105, raw={"a": "1"})
        second = make_row_signature("points", "Jane Doe", "BOS", 25.5, -110, -105, raw={"b": "2"})
        assert first == second

    def test_sparse_rows_fall_back_to_raw_values(self):
        signature = make_row_signature("points", raw={"b": "2", "a": "1"})
        assert signature == "points||||||1|2"

    def test_raw_fallback_ignores_column_order(self):
        first = make_row_signature("points", "Jane Doe", raw={"x": "1", "y": "2"})
        second = make_row_signature("points", "Jane Doe", raw={"y": "2", "x": "1"})
        assert first == second

    def test_raw_fallback_uses_prefix(self):
        raw = {f"c{i}": str(i) for i in range(9)}
        assert make_row_signature("points", raw=raw).count("|") == 10
