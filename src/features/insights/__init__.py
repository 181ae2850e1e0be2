"""Insight synthesis and rendering."""

from .formatter import format_insights_html, format_insights_text
from .models import Alert, Insights, KeyMetric
from .synthesizer import synthesize

__all__ = [
    "Alert",
    "Insights",
    "KeyMetric",
    "format_insights_html",
    "format_insights_text",
    "synthesize",
]
