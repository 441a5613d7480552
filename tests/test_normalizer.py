"""
Tests for the Row Normalizer.

Covers answer clamping, reverse scoring, stress classification, school name
column lookup and the blank-name rules, and grouping of rows by school.
"""

import math
import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from models import StressCategory, StudentRecord
from scoring import (
    DEFAULT_LAYOUT,
    EmptyDatasetError,
    SurveyLayout,
    build_student_record,
    clamp_score,
    classify,
    locate_school_column,
    normalize_rows,
    read_school_name,
    reverse_score,
    score_answers,
)


class TestClampScore:
    """Test coercion of raw cells onto the 1-5 scale."""

    @pytest.mark.parametrize("value,expected", [
        (1, 1), (3, 3), (5, 5),
        (0, 1), (-4, 1), (6, 5), (99, 5),
        (2.4, 2), (2.5, 3), (4.49, 4), (4.5, 5),
        ("4", 4), (" 2 ", 2), ("3.6", 4),
        ("often", 1), ("", 1), ("   ", 1), (None, 1),
        (float("nan"), 1), (True, 1),
    ])
    def test_clamp_values(self, value, expected):
        assert clamp_score(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("inf", 1), ("infinity", 1), ("nan", 1), ("1_0", 1), ("3 4", 1), ("-0x2", 1),
        ("Infinity", 5), ("-Infinity", 1), ("4e0", 4), (".5e1", 5), ("3.", 3),
        ("0x3", 3), ("0b10", 2), ("0o4", 4),
    ])
    def test_clamp_numeral_text(self, value, expected):
        """Only spreadsheet-style numerals are read as numbers; other text clamps to 1."""
        assert clamp_score(value) == expected

    def test_clamp_range_and_idempotence(self):
        """Every clamped value is on the scale and clamping again is a no-op."""
        samples = [-10, -0.5, 0, 0.7, 1, 1.5, 2.2, 3, 3.5, 4.8, 5, 5.1, 12, "x", "5", None, math.inf]
        for value in samples:
            clamped = clamp_score(value)
            assert clamped in {1, 2, 3, 4, 5}
            assert clamp_score(clamped) == clamped


class TestReverseScore:
    """Test reverse scoring of Q17-Q20."""

    def test_reverse_mapping(self):
        assert [reverse_score(v) for v in [1, 2, 3, 4, 5]] == [5, 4, 3, 2, 1]

    def test_reverse_is_involution(self):
        for value in range(1, 6):
            assert reverse_score(reverse_score(value)) == value


class TestClassify:
    """Test the stress category bands."""

    @pytest.mark.parametrize("score,expected", [
        (20, StressCategory.BALANCED),
        (40, StressCategory.BALANCED),
        (41, StressCategory.MILD),
        (65, StressCategory.MILD),
        (66, StressCategory.MODERATE),
        (85, StressCategory.MODERATE),
        (86, StressCategory.HIGH),
        (90, StressCategory.HIGH),
        (91, StressCategory.SEVERE),
        (100, StressCategory.SEVERE),
    ])
    def test_band_boundaries(self, score, expected):
        assert classify(score) == expected

    def test_partition_covers_score_range(self):
        """Each score from 20 to 100 maps to exactly one band, in band order."""
        order = list(StressCategory)
        previous = 0
        for score in range(20, 101):
            index = order.index(classify(score))
            assert index >= previous
            previous = index
        assert previous == order.index(StressCategory.SEVERE)


class TestSchoolColumn:
    """Test header-driven lookup of the school name column."""

    @pytest.mark.parametrize("label", ["sname", "SName", " School Name ", "SCHOOL"])
    def test_recognised_labels(self, label):
        header = ["id", "grade", label, "Q1"]
        assert locate_school_column(header) == 2

    def test_first_match_wins(self):
        assert locate_school_column(["school", "sname"]) == 0
        assert locate_school_column(["id", "sname", "school"]) == 1

    def test_fallback_to_first_column(self):
        assert locate_school_column(["campus", "grade", None, 42]) == 0

    def test_custom_layout_fallback(self):
        layout = SurveyLayout(fallback_name_column=3)
        assert locate_school_column(["a", "b"], layout) == 3


class TestReadSchoolName:
    """Test the two blank-name rules."""

    def test_trims_name(self):
        assert read_school_name(["  Oak Park  "], 0) == "Oak Park"

    @pytest.mark.parametrize("cell", [None, "", 0, float("nan"), False])
    def test_falsy_cell_becomes_unknown(self, cell):
        assert read_school_name([cell], 0) == "Unknown"

    def test_missing_cell_becomes_unknown(self):
        assert read_school_name(["only one cell"], 5) == "Unknown"

    def test_whitespace_cell_trims_to_empty(self):
        assert read_school_name(["   "], 0) == ""

    def test_numeric_names(self):
        assert read_school_name([101.0], 0) == "101"
        assert read_school_name([12], 0) == "12"
        assert read_school_name([1.5], 0) == "1.5"


class TestScoreAnswers:
    """Test building the 20 scored answers from a row."""

    def test_direct_and_reversed_columns(self, row_factory):
        row = row_factory("Oak", direct=list(range(1, 6)) * 3 + [2], reversed_raw=[1, 2, 4, 5])
        answers = score_answers(row)
        assert answers[:16] == [1, 2, 3, 4, 5] * 3 + [2]
        assert answers[16:] == [5, 4, 2, 1]

    def test_short_row_fills_with_minimum(self):
        """Missing trailing cells clamp to 1 (and reverse to 5 for Q17-Q20)."""
        row = ["1", "Oak"] + [""] * 6 + [4, 4]
        answers = score_answers(row)
        assert answers[:2] == [4, 4]
        assert answers[2:16] == [1] * 14
        assert answers[16:] == [5, 5, 5, 5]

    def test_layout_columns(self):
        assert list(DEFAULT_LAYOUT.direct_columns) == list(range(8, 24))
        assert list(DEFAULT_LAYOUT.reversed_columns) == list(range(24, 28))
        assert DEFAULT_LAYOUT.total_questions == 20


class TestStudentRecord:
    """Test StudentRecord construction and invariants."""

    def test_record_totals(self, row_factory):
        record = build_student_record("Oak", row_factory("Oak", direct=4, reversed_raw=2))
        assert len(record.answers) == 20
        assert record.total_score == sum(record.answers) == 16 * 4 + 4 * 4
        assert record.category == StressCategory.MODERATE
        assert 20 <= record.total_score <= 100

    def test_record_rejects_bad_answers(self):
        with pytest.raises(ValueError):
            StudentRecord(school_name="Oak", answers=[3] * 19, total_score=57, category=StressCategory.MILD)
        with pytest.raises(ValueError):
            StudentRecord(school_name="Oak", answers=[6] + [3] * 19, total_score=63, category=StressCategory.MILD)

    def test_record_rejects_wrong_total(self):
        with pytest.raises(ValueError):
            StudentRecord(school_name="Oak", answers=[3] * 20, total_score=61, category=StressCategory.MILD)


class TestNormalizeRows:
    """Test grouping of a full grid into school buckets."""

    def test_mild_student(self, header, row_factory):
        buckets = normalize_rows([header, row_factory("Oak", direct=3, reversed_raw=3)])
        record = buckets["Oak"][0]
        assert record.total_score == 60
        assert record.category == StressCategory.MILD

    def test_name_column_overlapping_q1(self, row_factory):
        """A name column placed at Q1's position makes Q1 an unreadable answer."""
        header = ["id", "a", "b", "c", "d", "e", "f", "g", "sname"] + [f"Q{i}" for i in range(2, 21)]
        row = row_factory("ignored", direct=3, reversed_raw=3)
        row[8] = "Oak"
        record = normalize_rows([header, row])["Oak"][0]
        assert record.answers[0] == 1
        assert record.total_score == 58
        assert record.category == StressCategory.MILD

    def test_severe_student(self, header, row_factory):
        buckets = normalize_rows([header, row_factory("Oak", direct=5, reversed_raw=1)])
        record = buckets["Oak"][0]
        assert record.answers == [5] * 20
        assert record.total_score == 100
        assert record.category == StressCategory.SEVERE

    def test_header_only_raises(self, header):
        with pytest.raises(EmptyDatasetError, match="no data rows"):
            normalize_rows([header])

    def test_empty_grid_raises(self):
        with pytest.raises(EmptyDatasetError):
            normalize_rows([])

    def test_grouping_order_and_skips(self, mixed_grid):
        buckets = normalize_rows(mixed_grid)
        assert list(buckets.keys()) == ["Oak", "Pine"]
        assert [r.total_score for r in buckets["Oak"]] == [60, 20]
        assert [r.total_score for r in buckets["Pine"]] == [100, 40]
        assert "" not in buckets

    def test_whitespace_name_row_dropped(self, header, row_factory):
        buckets = normalize_rows([header, row_factory("  "), row_factory("Oak")])
        assert list(buckets.keys()) == ["Oak"]
        assert len(buckets["Oak"]) == 1

    def test_empty_name_cell_goes_to_unknown(self, header, row_factory):
        buckets = normalize_rows([header, row_factory(None), row_factory("")])
        assert list(buckets.keys()) == ["Unknown"]
        assert len(buckets["Unknown"]) == 2

    def test_only_blank_names_gives_no_buckets(self, header, row_factory):
        assert normalize_rows([header, row_factory("   "), []]) == {}

    def test_fallback_name_column(self, row_factory):
        header = ["campus"] + [f"c{i}" for i in range(1, 28)]
        row = row_factory("ignored")
        row[0] = "Maple"
        buckets = normalize_rows([header, row])
        assert list(buckets.keys()) == ["Maple"]

    def test_malformed_cells_never_fail(self, header, row_factory):
        row = row_factory("Oak", direct=["n/a", None, "7", -2] + [3] * 12, reversed_raw=["", "x", 9, 2.5])
        record = normalize_rows([header, row])["Oak"][0]
        assert record.answers[:4] == [1, 1, 5, 1]
        assert record.answers[16:] == [5, 5, 1, 3]
