"""Shared fixtures for survey scoring tests."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


HEADER = (
    ["id", "sname", "grade", "section", "gender", "age", "date", "teacher"]
    + [f"Q{i}" for i in range(1, 21)]
)


def make_row(school, direct=3, reversed_raw=3, student_id=1):
    """Build a data row in the survey template layout.

    ``direct`` fills Q1-Q16 and ``reversed_raw`` fills Q17-Q20 with the raw
    (pre-reversal) answers; either may be a single value or a full list.
    """
    if not isinstance(direct, list):
        direct = [direct] * 16
    if not isinstance(reversed_raw, list):
        reversed_raw = [reversed_raw] * 4
    assert len(direct) == 16 and len(reversed_raw) == 4
    metadata = [student_id, school, 7, "A", "F", 12, "2024-03-01", "Ms. Rao"]
    return metadata + direct + reversed_raw


@pytest.fixture
def header():
    return list(HEADER)


@pytest.fixture
def row_factory():
    return make_row


@pytest.fixture
def mixed_grid(header):
    """Two schools, interleaved rows, one blank-name row."""
    return [
        header,
        make_row("Oak", direct=3, reversed_raw=3, student_id=1),
        make_row("Pine", direct=5, reversed_raw=1, student_id=2),
        make_row("   ", direct=4, reversed_raw=2, student_id=3),
        make_row("Oak", direct=1, reversed_raw=5, student_id=4),
        [],
        make_row("Pine", direct=2, reversed_raw=4, student_id=5),
    ]
