"""Analytics data models."""

from pydantic import BaseModel, Field


class CategoryCount(BaseModel):
    category: str
    count: int
    percentage: float


class HourlyCount(BaseModel):
    hour: int
    count: int


class WeekdayCount(BaseModel):
    """Traffic for one day of the week (0 = Monday)."""
    weekday: int
    count: int


class DailyCount(BaseModel):
    """Traffic for one calendar day."""
    date: str  # ISO date, e.g. "2026-02-14"
    count: int
    resolved: int
    errors: int


class IssuePattern(BaseModel):
    """Issue keyword with how often it occurred and a few sample messages."""
    pattern: str
    frequency: int
    examples: list[str] = Field(default_factory=list)


class SentimentAnalysis(BaseModel):
    positive: float = 0.0
    neutral: float = 0.0
    negative: float = 0.0


class ResponseTimeStats(BaseModel):
    """Nearest-rank response time statistics in milliseconds."""
    average: float = 0.0
    median: float = 0.0
    p95: float = 0.0
    p99: float = 0.0


class PlatformCount(BaseModel):
    platform: str
    count: int
    percentage: float


class VersionCount(BaseModel):
    version: str
    count: int
    percentage: float


class Analytics(BaseModel):
    """Complete quantitative aggregate over a set of interaction logs."""

    total_conversations: int = 0
    unique_users: int = 0
    average_session_duration: float = 0.0
    average_rating: float = 0.0
    resolved_rate: float = 0.0
    error_rate: float = 0.0
    top_categories: list[CategoryCount] = Field(default_factory=list)
    hourly_distribution: list[HourlyCount] = Field(default_factory=list)
    weekday_distribution: list[WeekdayCount] = Field(default_factory=list)
    daily_trend: list[DailyCount] = Field(default_factory=list)
    common_issues: list[IssuePattern] = Field(default_factory=list)
    user_sentiment: SentimentAnalysis = Field(default_factory=SentimentAnalysis)
    response_time_analysis: ResponseTimeStats = Field(default_factory=ResponseTimeStats)
    platform_distribution: list[PlatformCount] = Field(default_factory=list)
    app_versions: list[VersionCount] = Field(default_factory=list)
    average_messages_per_session: float = 0.0
    sessions_with_actions: int = 0
    total_messages: int = 0
    average_message_length: float = 0.0
