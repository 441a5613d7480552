"""
Aggregator for normalized survey records.

Groups of StudentRecords are summarised per school: average total score,
stress category distribution, and Often/Always indicator percentages for the
diagnostic questions. Aggregation cannot fail for any normalizer output.
"""

import logging
import math
from collections import Counter
from typing import Dict, List, Optional, Sequence

from models.survey import SchoolMetrics, StressCategory, StudentRecord
from .layout import DEFAULT_LAYOUT, SurveyLayout


logger = logging.getLogger(__name__)


def round1(value: float) -> float:
    """Round to one decimal place, halves rounding up."""
    return math.floor(value * 10 + 0.5) / 10


def percentage(count: int, total: int) -> float:
    return round1(count / total * 100)


def original_answer(stored_value: int, reversed_question: bool, layout: SurveyLayout = DEFAULT_LAYOUT) -> int:
    """Recover the answer as the student gave it, before reverse-scoring."""
    return layout.reverse_pivot - stored_value if reversed_question else stored_value


def indicator_percentage(
    records: Sequence[StudentRecord],
    question_index: int,
    layout: SurveyLayout = DEFAULT_LAYOUT
) -> float:
    """Share of students answering Often/Always on the original scale."""
    reversed_question = layout.is_reversed(question_index)
    count = sum(
        1 for record in records
        if original_answer(record.answers[question_index], reversed_question, layout)
        >= layout.high_frequency_threshold
    )
    return percentage(count, len(records))


def aggregate_school(
    school_name: str,
    records: Sequence[StudentRecord],
    layout: SurveyLayout = DEFAULT_LAYOUT
) -> Optional[SchoolMetrics]:
    """Compute SchoolMetrics for one school, or None if it has no students."""
    total = len(records)
    if total == 0:
        return None

    avg_score = round1(sum(record.total_score for record in records) / total)
    categories = Counter(record.category for record in records)
    indicators = layout.indicator_map()

    metrics = SchoolMetrics(
        school_name=school_name,
        total_students=total,
        avg_score=avg_score,
        pct_balanced=percentage(categories[StressCategory.BALANCED], total),
        pct_mild=percentage(categories[StressCategory.MILD], total),
        pct_mod=percentage(categories[StressCategory.MODERATE], total),
        pct_high=percentage(categories[StressCategory.HIGH], total),
        pct_severe=percentage(categories[StressCategory.SEVERE], total),
        pct_anxiety=indicator_percentage(records, indicators["anxiety"], layout),
        pct_pressure=indicator_percentage(records, indicators["pressure"], layout),
        pct_support=indicator_percentage(records, indicators["support"], layout),
        students=list(records),
    )

    logger.debug(
        f"{school_name}: {total} students, avg {avg_score}, "
        f"severe {metrics.pct_severe}%, anxiety {metrics.pct_anxiety}%"
    )
    return metrics


def aggregate_schools(
    buckets: Dict[str, Sequence[StudentRecord]],
    layout: Optional[SurveyLayout] = None
) -> List[SchoolMetrics]:
    """Aggregate every non-empty school bucket, keeping first-seen order."""
    layout = layout or DEFAULT_LAYOUT
    results = []
    for school_name, records in buckets.items():
        metrics = aggregate_school(school_name, records, layout)
        if metrics is not None:
            results.append(metrics)
    return results
