"""Scoring modules"""

from .integrity_scorer import IntegrityScorer, score
from .report_builder import ReportBuilder, SessionReport, format_duration, get_event_severity

__all__ = [
    "IntegrityScorer",
    "score",
    "ReportBuilder",
    "SessionReport",
    "format_duration",
    "get_event_severity",
]
