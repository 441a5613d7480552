"""
Core data models for the well-being survey analytics system.

This package contains:
- Survey record schemas (student responses, school metrics)
- Narrative generator input/output schemas
- Report schemas handed to the presentation layer
"""

from .survey import (
    StressCategory,
    StudentRecord,
    SchoolMetrics,
    SchoolSummaryPayload,
    AIInsights,
    SchoolReport,
    ANSWER_COUNT,
)

__all__ = [
    # Survey records
    "StressCategory",
    "StudentRecord",
    "SchoolMetrics",
    "ANSWER_COUNT",

    # Narrative schemas
    "SchoolSummaryPayload",
    "AIInsights",

    # Reports
    "SchoolReport",
]
