"""Per-session AI analysis and cross-session aggregation."""

from .aggregator import aggregate_analyses
from .analyzer import AnalysisError, CompletionClient, ConversationAnalyzer
from .models import AggregatedAnalysis, ConversationAnalysis, SessionAnalysisOutcome
from .report import format_analysis_report

__all__ = [
    "AggregatedAnalysis",
    "AnalysisError",
    "CompletionClient",
    "ConversationAnalysis",
    "ConversationAnalyzer",
    "SessionAnalysisOutcome",
    "aggregate_analyses",
    "format_analysis_report",
]
