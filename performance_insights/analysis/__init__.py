"""Analysis module for performance correlation calculations."""

from .engine import AnalysisReport, AnalysisSession, analyze_performance
from .normalizer import ActionEvent, MetricNormalizer, TaskRecord
from .correlation_analyzer import CorrelationAnalyzer, CorrelationResult

__all__ = [
    "AnalysisReport",
    "AnalysisSession",
    "analyze_performance",
    "ActionEvent",
    "MetricNormalizer",
    "TaskRecord",
    "CorrelationAnalyzer",
    "CorrelationResult",
]
