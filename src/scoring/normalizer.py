"""
Row Normalizer for survey spreadsheets.

Converts a raw 2-D grid of cells (header row first) into typed StudentRecord
objects grouped by school. Each answer cell is clamped onto the 1-5 scale and
the last four questions are reverse-scored before the total and stress
category are derived.
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional, Sequence, Union

from models.survey import StressCategory, StudentRecord
from .errors import EmptyDatasetError
from .layout import DEFAULT_LAYOUT, SurveyLayout


logger = logging.getLogger(__name__)

Cell = Union[int, float, str, bool, None]
Row = Sequence[Cell]
RawGrid = Sequence[Row]

MIN_SCORE = 1
MAX_SCORE = 5

# Numerals a spreadsheet cell may hold: decimal with optional exponent, signed
# Infinity, or unsigned hex/octal/binary integer literals.
DECIMAL_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?Infinity")
RADIX_PATTERN = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")

# Upper bounds (inclusive) of each stress band; anything above is Severe.
CATEGORY_BOUNDS = (
    (40, StressCategory.BALANCED),
    (65, StressCategory.MILD),
    (85, StressCategory.MODERATE),
    (90, StressCategory.HIGH),
)


def _to_number(value: Any) -> float:
    """Coerce a cell to a float, NaN when it cannot be read as a number."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if DECIMAL_PATTERN.fullmatch(text):
            return float(text)
        if RADIX_PATTERN.fullmatch(text):
            return float(int(text, 0))
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def clamp_score(value: Any) -> int:
    """Clamp a raw answer cell onto the 1-5 scale.

    Unreadable values and anything below 1 become 1, anything above 5
    becomes 5, and in-range values are rounded half up.
    """
    number = _to_number(value)
    if math.isnan(number) or number < MIN_SCORE:
        return MIN_SCORE
    if number > MAX_SCORE:
        return MAX_SCORE
    return int(math.floor(number + 0.5))


def reverse_score(value: int, pivot: int = 6) -> int:
    """Invert a 1-5 answer (1<->5, 2<->4, 3 unchanged)."""
    return pivot - value


def classify(total_score: int) -> StressCategory:
    """Map a total score onto its stress category."""
    for upper, category in CATEGORY_BOUNDS:
        if total_score <= upper:
            return category
    return StressCategory.SEVERE


def locate_school_column(header: Row, layout: SurveyLayout = DEFAULT_LAYOUT) -> int:
    """Find the school name column by header label, else the fallback column."""
    for index, label in enumerate(header):
        text = "" if label is None else str(label)
        if text.strip().lower() in layout.school_name_labels:
            return index
    return layout.fallback_name_column


def _is_blank_cell(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return not value


def _cell_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _cell_at(row: Row, index: int) -> Cell:
    return row[index] if 0 <= index < len(row) else None


def read_school_name(row: Row, column: int, layout: SurveyLayout = DEFAULT_LAYOUT) -> str:
    """Read and trim the school name of a row.

    A missing or falsy cell resolves to the layout's unknown name. A present
    cell that is only whitespace trims to an empty string, which callers
    treat as "skip this row".
    """
    value = _cell_at(row, column)
    if _is_blank_cell(value):
        return layout.unknown_school_name
    return _cell_text(value).strip()


def score_answers(row: Row, layout: SurveyLayout = DEFAULT_LAYOUT) -> List[int]:
    """Build the 20 post-scoring answers for a row."""
    answers = [clamp_score(_cell_at(row, col)) for col in layout.direct_columns]
    answers.extend(
        reverse_score(clamp_score(_cell_at(row, col)), layout.reverse_pivot)
        for col in layout.reversed_columns
    )
    return answers


def _count_clamped(row: Row, layout: SurveyLayout) -> int:
    """Number of answer cells that were not already a whole number in range."""
    count = 0
    for col in list(layout.direct_columns) + list(layout.reversed_columns):
        number = _to_number(_cell_at(row, col))
        if math.isnan(number) or number < MIN_SCORE or number > MAX_SCORE or not number.is_integer():
            count += 1
    return count


def build_student_record(
    school_name: str,
    row: Row,
    layout: SurveyLayout = DEFAULT_LAYOUT
) -> StudentRecord:
    """Score a single data row into a StudentRecord."""
    answers = score_answers(row, layout)
    total_score = sum(answers)
    return StudentRecord(
        school_name=school_name,
        answers=answers,
        total_score=total_score,
        category=classify(total_score),
    )


def normalize_rows(
    grid: RawGrid,
    layout: Optional[SurveyLayout] = None
) -> Dict[str, List[StudentRecord]]:
    """
    Convert a raw grid into StudentRecords grouped by school.

    Args:
        grid: Rows of cells, header row first
        layout: Column layout of the survey template

    Returns:
        Mapping of school name to its records, in first-seen school order
        with row order preserved inside each school

    Raises:
        EmptyDatasetError: If the grid has no data rows beyond the header
    """
    layout = layout or DEFAULT_LAYOUT

    if len(grid) < 2:
        raise EmptyDatasetError()

    name_column = locate_school_column(grid[0], layout)
    logger.debug(f"Using column {name_column} for school names")

    buckets: Dict[str, List[StudentRecord]] = {}
    skipped_rows = 0
    clamped_cells = 0

    for row_number, row in enumerate(grid[1:], start=2):
        if not row:
            continue

        school_name = read_school_name(row, name_column, layout)
        if not school_name:
            skipped_rows += 1
            logger.debug(f"Skipping row {row_number}: blank school name")
            continue

        clamped_cells += _count_clamped(row, layout)
        buckets.setdefault(school_name, []).append(
            build_student_record(school_name, row, layout)
        )

    if skipped_rows:
        logger.debug(f"Skipped {skipped_rows} rows with blank school names")
    if clamped_cells:
        logger.debug(f"Clamped {clamped_cells} malformed or out-of-range answer cells")

    logger.info(
        f"Normalized {sum(len(records) for records in buckets.values())} students "
        f"across {len(buckets)} schools"
    )
    return buckets
