"""Exceptions raised while loading and scoring survey spreadsheets."""


class SurveyError(Exception):
    """Base exception for survey processing errors."""
    pass


class EmptyDatasetError(SurveyError):
    """Raised when the uploaded grid has no data rows beyond the header."""

    def __init__(self, message: str = "File appears empty or has no data rows."):
        super().__init__(message)


class UnsupportedFileTypeError(SurveyError):
    """Raised for files that are not .xlsx, .xls or .csv."""
    pass


class SpreadsheetReadError(SurveyError):
    """Raised when the spreadsheet decoder fails on the uploaded file."""
    pass
