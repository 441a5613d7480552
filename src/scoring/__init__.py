"""
Survey Scoring and Aggregation Engine

This package turns a raw spreadsheet grid of well-being survey responses into
per-school stress metrics.

Main components:
- SurveyLayout: positional column contract of the survey template
- normalize_rows: Row Normalizer producing StudentRecords grouped by school
- aggregate_schools: Aggregator producing SchoolMetrics per school
- load_grid / analyze_file: spreadsheet decoding and the full pipeline
"""

from .errors import SurveyError, EmptyDatasetError, UnsupportedFileTypeError, SpreadsheetReadError
from .layout import SurveyLayout, IndicatorQuestion, DEFAULT_LAYOUT
from .normalizer import (
    clamp_score,
    reverse_score,
    classify,
    locate_school_column,
    read_school_name,
    score_answers,
    build_student_record,
    normalize_rows,
)
from .aggregator import round1, percentage, indicator_percentage, aggregate_school, aggregate_schools
from .loaders import (
    SUPPORTED_EXTENSIONS,
    load_grid,
    load_grid_from_bytes,
    analyze_grid,
    analyze_file,
    analyze_upload,
)

__all__ = [
    # Errors
    'SurveyError',
    'EmptyDatasetError',
    'UnsupportedFileTypeError',
    'SpreadsheetReadError',

    # Layout
    'SurveyLayout',
    'IndicatorQuestion',
    'DEFAULT_LAYOUT',

    # Row Normalizer
    'clamp_score',
    'reverse_score',
    'classify',
    'locate_school_column',
    'read_school_name',
    'score_answers',
    'build_student_record',
    'normalize_rows',

    # Aggregator
    'round1',
    'percentage',
    'indicator_percentage',
    'aggregate_school',
    'aggregate_schools',

    # Loading
    'SUPPORTED_EXTENSIONS',
    'load_grid',
    'load_grid_from_bytes',
    'analyze_grid',
    'analyze_file',
    'analyze_upload',
]
