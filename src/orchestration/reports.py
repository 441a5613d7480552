"""
Report assembly for per-school well-being reports.

Pairs each school's SchoolMetrics with an AI narrative fetched through an
injected InsightsFetcher. Fetches run concurrently under a semaphore; a
failure for one school is recorded on that school's report and never affects
the others. Reports always come back in the order the schools were given.
"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, validator

from agents.insights import InsightsFetcher
from models import SchoolMetrics, SchoolReport


logger = logging.getLogger(__name__)


class ReportConfig(BaseModel):
    """Configuration for report assembly."""

    max_concurrent_schools: int = 3
    fetch_insights: bool = True

    @validator('max_concurrent_schools')
    def validate_concurrency_limit(cls, v):
        if v < 1 or v > 50:
            raise ValueError("Concurrency limits must be between 1 and 50")
        return v


class ReportRun(BaseModel):
    """Results from one report assembly run."""

    reports: List[SchoolReport] = Field(default_factory=list)
    total_schools: int = 0
    total_students: int = 0
    insights_succeeded: int = 0
    insights_failed: int = 0
    execution_time_ms: float = 0.0

    @property
    def errors(self) -> List[str]:
        return [f"{report.school_name}: {report.error}" for report in self.reports if report.error]


async def _report_for(
    metrics: SchoolMetrics,
    fetcher: InsightsFetcher,
    semaphore: asyncio.Semaphore
) -> SchoolReport:
    async with semaphore:
        try:
            insights = await fetcher(metrics.summary())
        except Exception as e:
            logger.warning(f"Insights failed for {metrics.school_name}: {e}")
            return SchoolReport(metrics=metrics, error=str(e))
    return SchoolReport(metrics=metrics, ai_insights=insights)


async def build_reports(
    metrics: Sequence[SchoolMetrics],
    fetcher: Optional[InsightsFetcher] = None,
    config: Optional[ReportConfig] = None
) -> List[SchoolReport]:
    """
    Build one SchoolReport per school.

    Args:
        metrics: Aggregated school metrics, in display order
        fetcher: Async callable producing AIInsights from a summary payload
        config: Concurrency and fetch settings

    Returns:
        Reports in the same order as ``metrics``
    """
    config = config or ReportConfig()

    if fetcher is None or not config.fetch_insights:
        return [SchoolReport(metrics=school) for school in metrics]

    semaphore = asyncio.Semaphore(config.max_concurrent_schools)
    # gather preserves argument order regardless of completion order
    return list(await asyncio.gather(
        *(_report_for(school, fetcher, semaphore) for school in metrics)
    ))


async def run_reports(
    metrics: Sequence[SchoolMetrics],
    fetcher: Optional[InsightsFetcher] = None,
    config: Optional[ReportConfig] = None
) -> ReportRun:
    """Build reports and summarise how the narrative fetches went."""
    start_time = time.time()
    reports = await build_reports(metrics, fetcher, config)

    run = ReportRun(
        reports=reports,
        total_schools=len(reports),
        total_students=sum(report.metrics.total_students for report in reports),
        insights_succeeded=sum(1 for report in reports if report.ai_insights is not None),
        insights_failed=sum(1 for report in reports if report.error is not None),
        execution_time_ms=(time.time() - start_time) * 1000,
    )

    logger.info(
        f"Built {run.total_schools} reports for {run.total_students} students "
        f"({run.insights_succeeded} narratives, {run.insights_failed} failures)"
    )
    return run
