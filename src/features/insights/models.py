"""Insight data models."""

from typing import Literal

from pydantic import BaseModel, Field

Trend = Literal["up", "down", "stable"]
Severity = Literal["high", "medium", "low"]


class KeyMetric(BaseModel):
    """Headline metric with an optional comparison to the previous period."""

    name: str
    value: str | int
    change: str | None = None
    trend: Trend | None = None


class Alert(BaseModel):
    """Threshold-triggered alert."""

    severity: Severity
    message: str
    metric: str | None = None
    value: float | None = None


class Insights(BaseModel):
    """Human-readable findings derived from one analytics aggregate."""

    summary: str
    key_metrics: list[KeyMetric] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    trends_analysis: str = ""
    performance_highlights: list[str] = Field(default_factory=list)
