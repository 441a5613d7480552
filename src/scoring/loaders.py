"""
Spreadsheet loaders and the end-to-end scoring pipeline.

This module turns uploaded survey files (.xlsx, .xls, .csv) into the raw
row-major grid consumed by the Row Normalizer, and exposes convenience
functions that run the whole load -> normalize -> aggregate pipeline.
"""

import csv
import io
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

import pandas as pd

from models.survey import SchoolMetrics
from .aggregator import aggregate_schools
from .errors import SpreadsheetReadError, UnsupportedFileTypeError
from .layout import SurveyLayout
from .normalizer import RawGrid, normalize_rows

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".xlsx", ".xls", ".csv")

FileSource = Union[str, Path, io.BytesIO]


def _extension_of(filename: Union[str, Path]) -> str:
    suffix = Path(str(filename)).suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileTypeError(
            f"Unsupported file type '{suffix or filename}'. "
            f"Expected one of: {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    return suffix


def _clean_cell(value: Any) -> Any:
    """Convert pandas missing markers and numpy scalars to plain Python values."""
    if value is None or pd.isna(value):
        return None
    if hasattr(value, "item"):
        return value.item()
    return value


def dataframe_to_grid(df: pd.DataFrame) -> RawGrid:
    """Convert a header-less DataFrame to a list of rows.

    Trailing empty cells are dropped from each row, so a fully blank row
    becomes an empty list.
    """
    grid: List[List[Any]] = []
    for values in df.itertuples(index=False, name=None):
        row = [_clean_cell(value) for value in values]
        while row and row[-1] is None:
            row.pop()
        grid.append(row)

    # Spreadsheet decoders stop at the last populated row
    while grid and not grid[-1]:
        grid.pop()
    return grid


def _csv_width(text: str) -> int:
    """Number of fields in the widest CSV record."""
    return max((len(record) for record in csv.reader(io.StringIO(text))), default=0)


def _read_csv(source: FileSource) -> pd.DataFrame:
    """Read a CSV into a frame as wide as its widest row.

    Rows may have any number of fields; short rows are padded with missing
    cells. Only empty fields count as missing, so text such as "NA" or
    "None" is kept verbatim.
    """
    if isinstance(source, io.BytesIO):
        text = source.getvalue().decode("utf-8-sig")
    else:
        text = Path(source).read_text(encoding="utf-8-sig")

    width = _csv_width(text)
    if width == 0:
        raise pd.errors.EmptyDataError("No columns to parse from file")

    return pd.read_csv(
        io.StringIO(text),
        header=None,
        names=list(range(width)),
        dtype=object,
        keep_default_na=False,
        na_values=[""],
        skip_blank_lines=False
    )


def _read_frame(source: FileSource, extension: str) -> pd.DataFrame:
    if extension == ".csv":
        return _read_csv(source)
    engine = "xlrd" if extension == ".xls" else "openpyxl"
    # First sheet only
    return pd.read_excel(source, sheet_name=0, header=None, engine=engine)


def load_grid(path: Union[str, Path]) -> RawGrid:
    """
    Load the first sheet of a survey file as a raw grid.

    Args:
        path: Path to a .xlsx, .xls or .csv file

    Returns:
        Row-major list of cells, header row first

    Raises:
        UnsupportedFileTypeError: For other file extensions
        SpreadsheetReadError: If the file cannot be decoded
    """
    path = Path(path)
    extension = _extension_of(path)

    try:
        df = _read_frame(path, extension)
    except pd.errors.EmptyDataError:
        logger.info(f"{path.name} contains no rows")
        return []
    except Exception as e:
        raise SpreadsheetReadError(f"Failed to read {path.name}: {e}") from e

    grid = dataframe_to_grid(df)
    logger.info(f"Loaded {len(grid)} rows from {path.name}")
    return grid


def load_grid_from_bytes(data: bytes, filename: str) -> RawGrid:
    """Load an in-memory upload buffer, using the filename to pick the decoder."""
    extension = _extension_of(filename)

    try:
        df = _read_frame(io.BytesIO(data), extension)
    except pd.errors.EmptyDataError:
        logger.info(f"{filename} contains no rows")
        return []
    except Exception as e:
        raise SpreadsheetReadError(f"Failed to read {filename}: {e}") from e

    grid = dataframe_to_grid(df)
    logger.info(f"Loaded {len(grid)} rows from {filename}")
    return grid


def analyze_grid(grid: RawGrid, layout: Optional[SurveyLayout] = None) -> List[SchoolMetrics]:
    """Run the normalizer and aggregator over an already decoded grid."""
    buckets = normalize_rows(grid, layout)
    return aggregate_schools(buckets, layout)


def analyze_file(path: Union[str, Path], layout: Optional[SurveyLayout] = None) -> List[SchoolMetrics]:
    """Quick function to load a survey file and compute per-school metrics."""
    return analyze_grid(load_grid(path), layout)


def analyze_upload(data: bytes, filename: str, layout: Optional[SurveyLayout] = None) -> List[SchoolMetrics]:
    """Same as analyze_file, for an uploaded in-memory buffer."""
    return analyze_grid(load_grid_from_bytes(data, filename), layout)


__all__ = [
    'SUPPORTED_EXTENSIONS',
    'dataframe_to_grid',
    'load_grid',
    'load_grid_from_bytes',
    'analyze_grid',
    'analyze_file',
    'analyze_upload',
]
