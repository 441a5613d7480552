"""
Column layout of the well-being survey spreadsheet template.

The template places eight metadata columns first, followed by Q1-Q16
(scored directly) and Q17-Q20 (reverse-scored). The school name column is
located by header label, falling back to the first column.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class IndicatorQuestion:
    """A diagnostic question reported as an Often/Always percentage."""
    name: str
    question_index: int  # 0-based, Q1 == 0


@dataclass(frozen=True)
class SurveyLayout:
    """Positional contract between the spreadsheet and the scoring engine."""

    metadata_columns: int = 8
    direct_questions: int = 16
    reversed_questions: int = 4

    school_name_labels: Tuple[str, ...] = ("sname", "school name", "school")
    fallback_name_column: int = 0
    unknown_school_name: str = "Unknown"

    # Often (4) / Always (5) on the original answer scale
    high_frequency_threshold: int = 4
    reverse_pivot: int = 6

    indicator_questions: Tuple[IndicatorQuestion, ...] = field(default_factory=lambda: (
        IndicatorQuestion("anxiety", 0),    # Q1
        IndicatorQuestion("pressure", 4),   # Q5
        IndicatorQuestion("support", 18),   # Q19
    ))

    @property
    def total_questions(self) -> int:
        return self.direct_questions + self.reversed_questions

    @property
    def direct_columns(self) -> range:
        start = self.metadata_columns
        return range(start, start + self.direct_questions)

    @property
    def reversed_columns(self) -> range:
        start = self.metadata_columns + self.direct_questions
        return range(start, start + self.reversed_questions)

    def is_reversed(self, question_index: int) -> bool:
        """Whether the answer at this index is stored reverse-scored."""
        return self.direct_questions <= question_index < self.total_questions

    def indicator_map(self) -> Dict[str, int]:
        return {q.name: q.question_index for q in self.indicator_questions}


DEFAULT_LAYOUT = SurveyLayout()
