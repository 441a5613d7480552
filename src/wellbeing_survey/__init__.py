"""
Student Well-Being Survey Analytics

Scores student well-being survey spreadsheets, aggregates per-school stress
metrics, and generates AI narratives for each school's report.
"""

__version__ = "0.1.0"
