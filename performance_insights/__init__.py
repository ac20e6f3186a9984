"""Performance insights: correlation, pattern and optimization analysis of work activity."""

__version__ = "0.1.0"

from .analysis import AnalysisReport, AnalysisSession, analyze_performance

__all__ = ["AnalysisReport", "AnalysisSession", "analyze_performance", "__version__"]
