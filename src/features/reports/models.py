"""Report request and response models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from src.features.analytics.models import Analytics
from src.features.conversation_analysis.models import AggregatedAnalysis, ConversationAnalysis
from src.features.insights.models import Insights

ReportFormat = Literal["json", "html", "text"]
AIReportFormat = Literal["json", "html"]


class AnalyzeRequest(BaseModel):
    """Time range for an on-demand analysis. Defaults to the last 24 hours."""

    hours: int | None = Field(default=None, ge=1, le=24 * 366)
    start_date: datetime | None = None
    end_date: datetime | None = None
    compare_previous: bool = True

    @model_validator(mode="after")
    def check_range(self) -> "AnalyzeRequest":
        if self.start_date and self.end_date:
            if (self.start_date.tzinfo is None) != (self.end_date.tzinfo is None):
                raise ValueError("start_date and end_date must both carry a timezone or neither")
            if self.start_date >= self.end_date:
                raise ValueError("start_date must be before end_date")
        return self


class ReportPeriod(BaseModel):
    label: str
    start_date: datetime
    end_date: datetime


class AnalysisRun(BaseModel):
    """Analytics and insights for one period, with both renderings."""

    period: ReportPeriod
    analytics: Analytics
    insights: Insights
    html: str
    text: str


class AnalysisResponse(BaseModel):
    period: ReportPeriod
    analytics: Analytics
    insights: Insights


class AIReport(BaseModel):
    """Cross-session AI report for one period."""

    period: ReportPeriod
    sessions_analyzed: int
    analysis: AggregatedAnalysis
    report: str


class AIReportResponse(BaseModel):
    period: str
    sessions_analyzed: int
    message: str | None = None
    analysis: AggregatedAnalysis | None = None
    report: str | None = None


class SessionAnalysisResponse(BaseModel):
    session_id: str
    analysis: ConversationAnalysis
