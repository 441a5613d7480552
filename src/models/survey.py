"""
Survey data models for the well-being analytics pipeline.

These schemas describe the records produced at each stage:
- StudentRecord: one normalized survey response (Row Normalizer output)
- SchoolMetrics: per-school aggregate statistics (Aggregator output)
- SchoolSummaryPayload / AIInsights: the narrative fetcher's input and output
- SchoolReport: metrics plus narrative, handed to the presentation layer

All records are created fresh per upload and never mutated afterwards.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, validator


ANSWER_COUNT = 20
MIN_ANSWER = 1
MAX_ANSWER = 5


class StressCategory(str, Enum):
    """Stress band derived from a student's total score."""
    BALANCED = "Balanced"
    MILD = "Mild"
    MODERATE = "Moderate"
    HIGH = "High"
    SEVERE = "Severe"


class StudentRecord(BaseModel):
    """A single student's scored survey response."""
    school_name: str
    answers: List[int]  # Q1-Q20, post reverse-scoring
    total_score: int
    category: StressCategory

    class Config:
        frozen = True

    @validator('school_name')
    def validate_school_name(cls, v):
        if not v:
            raise ValueError("school_name must be a non-empty string")
        return v

    @validator('answers')
    def validate_answers(cls, v):
        """Every record carries exactly 20 answers on the 1-5 scale."""
        if len(v) != ANSWER_COUNT:
            raise ValueError(f"answers must contain exactly {ANSWER_COUNT} values, got {len(v)}")
        for value in v:
            if value < MIN_ANSWER or value > MAX_ANSWER:
                raise ValueError(f"answer {value} outside {MIN_ANSWER}-{MAX_ANSWER} range")
        return v

    @validator('total_score')
    def validate_total_score(cls, v, values):
        answers = values.get('answers')
        if answers is not None and v != sum(answers):
            raise ValueError("total_score must equal the sum of answers")
        return v


class SchoolSummaryPayload(BaseModel):
    """Summary subset of SchoolMetrics sent to the narrative generator."""
    school: str
    students: int
    avg_score: float
    pct_balanced: float
    pct_mild: float
    pct_moderate: float
    pct_high: float
    pct_severe: float
    pct_anxiety: float
    pct_pressure: float
    pct_support: float


class SchoolMetrics(BaseModel):
    """Aggregate stress metrics for one school."""
    school_name: str
    total_students: int = Field(ge=1)
    avg_score: float

    # Category distribution (independently rounded, may not sum to exactly 100)
    pct_balanced: float = Field(ge=0.0, le=100.0)
    pct_mild: float = Field(ge=0.0, le=100.0)
    pct_mod: float = Field(ge=0.0, le=100.0)
    pct_high: float = Field(ge=0.0, le=100.0)
    pct_severe: float = Field(ge=0.0, le=100.0)

    # Often/Always indicators on the original answer scale
    pct_anxiety: float = Field(ge=0.0, le=100.0)   # Q1
    pct_pressure: float = Field(ge=0.0, le=100.0)  # Q5
    pct_support: float = Field(ge=0.0, le=100.0)   # Q19

    students: List[StudentRecord] = []

    class Config:
        frozen = True

    @property
    def category_percentages(self) -> dict:
        """Category percentages keyed by StressCategory."""
        return {
            StressCategory.BALANCED: self.pct_balanced,
            StressCategory.MILD: self.pct_mild,
            StressCategory.MODERATE: self.pct_mod,
            StressCategory.HIGH: self.pct_high,
            StressCategory.SEVERE: self.pct_severe,
        }

    def summary(self) -> SchoolSummaryPayload:
        """Build the payload consumed by the narrative generator."""
        return SchoolSummaryPayload(
            school=self.school_name,
            students=self.total_students,
            avg_score=self.avg_score,
            pct_balanced=self.pct_balanced,
            pct_mild=self.pct_mild,
            pct_moderate=self.pct_mod,
            pct_high=self.pct_high,
            pct_severe=self.pct_severe,
            pct_anxiety=self.pct_anxiety,
            pct_pressure=self.pct_pressure,
            pct_support=self.pct_support,
        )


class AIInsights(BaseModel):
    """Narrative fields returned by the AI generator, used verbatim downstream."""
    executive_summary: str = "No summary available."
    strengths: str = "No strengths data available."
    intervention: str = "No intervention recommendations available."


class SchoolReport(BaseModel):
    """Metrics for one school together with its narrative (if fetched)."""
    metrics: SchoolMetrics
    ai_insights: Optional[AIInsights] = None
    error: Optional[str] = None

    @property
    def school_name(self) -> str:
        return self.metrics.school_name

    @property
    def has_insights(self) -> bool:
        return self.ai_insights is not None
