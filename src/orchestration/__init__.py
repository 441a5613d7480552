"""
Report orchestration for per-school well-being reports.
"""

from .reports import ReportConfig, ReportRun, build_reports, run_reports

__all__ = [
    "ReportConfig",
    "ReportRun",
    "build_reports",
    "run_reports",
]
