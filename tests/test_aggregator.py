"""
Tests for the Aggregator.

Verifies per-school averages, category distributions, indicator percentages
on the original answer scale, rounding, and school ordering.
"""

import pytest
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from models import SchoolMetrics, StressCategory
from scoring import (
    aggregate_school,
    aggregate_schools,
    analyze_grid,
    build_student_record,
    indicator_percentage,
    normalize_rows,
    percentage,
    round1,
)


def records_for(row_factory, specs, school="A"):
    return [build_student_record(school, row_factory(school, direct=d, reversed_raw=r)) for d, r in specs]


class TestRounding:
    """Test one-decimal rounding with halves rounding up."""

    @pytest.mark.parametrize("value,expected", [
        (62.5, 62.5),
        (33.333333, 33.3),
        (66.666666, 66.7),
        (12.25, 12.3),
        (0.04, 0.0),
        (100.0, 100.0),
    ])
    def test_round1(self, value, expected):
        assert round1(value) == expected

    def test_percentage(self):
        assert percentage(1, 3) == 33.3
        assert percentage(2, 3) == 66.7
        assert percentage(1, 8) == 12.5
        assert percentage(0, 5) == 0.0


class TestAggregateSchool:
    """Test metrics for a single school bucket."""

    def test_two_category_split(self, row_factory):
        # Balanced: Q1-Q16 = 1 (16) + stored [4,4,3,3] (14) = 30
        # Severe:   Q1-Q16 = 5 (80) + stored [4,4,4,3] (15) = 95
        records = records_for(row_factory, [
            (1, [2, 2, 3, 3]),
            (5, [2, 2, 2, 3]),
        ])
        assert [r.total_score for r in records] == [30, 95]

        metrics = aggregate_school("A", records)
        assert metrics.total_students == 2
        assert metrics.avg_score == 62.5
        assert metrics.pct_balanced == 50.0
        assert metrics.pct_severe == 50.0
        assert metrics.pct_mild == 0.0
        assert metrics.pct_mod == 0.0
        assert metrics.pct_high == 0.0

    def test_all_high_answers(self, row_factory):
        records = records_for(row_factory, [(5, 1)])
        metrics = aggregate_school("A", records)
        assert metrics.pct_severe == 100.0
        assert metrics.pct_anxiety == 100.0
        assert metrics.pct_pressure == 100.0
        # Q19 stored as 5 means the student originally answered 1 (Never)
        assert metrics.pct_support == 0.0

    def test_support_counts_original_often_always(self, row_factory):
        records = records_for(row_factory, [
            (3, [3, 3, 4, 3]),
            (3, [3, 3, 5, 3]),
            (3, [3, 3, 3, 3]),
            (3, [3, 3, 1, 3]),
        ])
        assert aggregate_school("A", records).pct_support == 50.0

    def test_empty_bucket_is_skipped(self):
        assert aggregate_school("A", []) is None

    def test_students_are_retained_in_order(self, row_factory):
        records = records_for(row_factory, [(1, 5), (2, 4), (3, 3)])
        metrics = aggregate_school("A", records)
        assert [s.total_score for s in metrics.students] == [r.total_score for r in records]

    def test_category_sum_within_rounding_tolerance(self, row_factory):
        # One student each in Balanced, Mild and Moderate -> 33.3 x 3
        records = records_for(row_factory, [(1, 5), (3, 3), (4, 2)])
        metrics = aggregate_school("A", records)
        assert metrics.pct_balanced == metrics.pct_mild == metrics.pct_mod == 33.3
        total = sum(metrics.category_percentages.values())
        assert total == pytest.approx(99.9)
        assert 99.5 <= total <= 100.5

    def test_metrics_are_frozen(self, row_factory):
        metrics = aggregate_school("A", records_for(row_factory, [(3, 3)]))
        with pytest.raises(Exception):
            metrics.avg_score = 1.0


class TestIndicatorInvariance:
    """Indicator percentages must match a count over the raw answers."""

    def test_matches_raw_data(self, header, row_factory):
        raw_rows = [
            (1, [5, 5, 5, 5], [4, 1, 5, 2]),
            (4, [2, 4, 3, 1], [1, 2, 4, 5]),
            (5, [1, 1, 1, 1], [3, 3, 3, 3]),
            (2, [3, 5, 2, 4], [5, 5, 1, 1]),
            (4, [4, 4, 4, 4], [2, 2, 2, 2]),
        ]
        grid = [header]
        for q1, q5_block, reversed_raw in raw_rows:
            direct = [q1, 3, 3, 3] + q5_block + [3] * 8
            grid.append(row_factory("A", direct=direct, reversed_raw=reversed_raw))

        metrics = analyze_grid(grid)[0]
        data_rows = grid[1:]

        def raw_share(column):
            hits = sum(1 for row in data_rows if row[column] >= 4)
            return percentage(hits, len(data_rows))

        assert metrics.pct_anxiety == raw_share(8)    # Q1
        assert metrics.pct_pressure == raw_share(12)  # Q5
        assert metrics.pct_support == raw_share(26)   # Q19

    def test_indicator_uses_layout_reversal(self, row_factory):
        records = records_for(row_factory, [(5, 5)])
        # Q17 (index 16) is reverse-scored; raw answer was 5
        assert indicator_percentage(records, 16) == 100.0
        # Q16 (index 15) is direct; stored answer is 5
        assert indicator_percentage(records, 15) == 100.0


class TestAggregateSchools:
    """Test aggregation across school buckets."""

    def test_order_matches_first_seen(self, mixed_grid):
        results = aggregate_schools(normalize_rows(mixed_grid))
        assert [m.school_name for m in results] == ["Oak", "Pine"]

    def test_mixed_grid_metrics(self, mixed_grid):
        oak, pine = analyze_grid(mixed_grid)

        assert oak.total_students == 2
        assert oak.avg_score == 40.0
        assert oak.pct_balanced == 50.0
        assert oak.pct_mild == 50.0
        assert oak.pct_anxiety == 0.0
        assert oak.pct_support == 50.0

        assert pine.total_students == 2
        assert pine.avg_score == 70.0
        assert pine.pct_severe == 50.0
        assert pine.pct_balanced == 50.0
        assert pine.pct_anxiety == 50.0
        assert pine.pct_pressure == 50.0
        assert pine.pct_support == 50.0

    def test_empty_buckets_are_omitted(self, row_factory):
        buckets = {"A": records_for(row_factory, [(3, 3)]), "B": []}
        results = aggregate_schools(buckets)
        assert [m.school_name for m in results] == ["A"]

    def test_every_school_has_students(self, mixed_grid):
        for metrics in analyze_grid(mixed_grid):
            assert isinstance(metrics, SchoolMetrics)
            assert metrics.total_students >= 1
            assert 99.5 <= sum(metrics.category_percentages.values()) <= 100.5

    def test_summary_payload(self, mixed_grid):
        oak = analyze_grid(mixed_grid)[0]
        payload = oak.summary()
        assert payload.school == "Oak"
        assert payload.students == 2
        assert payload.pct_moderate == oak.pct_mod
        assert set(payload.model_dump().keys()) == {
            "school", "students", "avg_score",
            "pct_balanced", "pct_mild", "pct_moderate", "pct_high", "pct_severe",
            "pct_anxiety", "pct_pressure", "pct_support",
        }
