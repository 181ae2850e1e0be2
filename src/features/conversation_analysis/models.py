"""Models for per-session AI analysis and the cross-session report."""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import AliasGenerator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _normalize_label(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


Level = Annotated[Literal["low", "medium", "high"], BeforeValidator(_normalize_label)]
Score = Annotated[int, Field(ge=0, le=100)]


class CompletionModel(BaseModel):
    """Base for judgments parsed from completion JSON. Reads camelCase keys, writes snake_case."""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel), populate_by_name=True
    )


class RequestAnalysis(CompletionModel):
    """Judgment of the first user request."""

    original_message: str = ""
    intent: str
    category: str
    urgency: Level
    sentiment: Annotated[Literal["positive", "neutral", "negative"], BeforeValidator(_normalize_label)]
    clarity: Score
    needs_clarification: bool


class FlowAnalysis(CompletionModel):
    """Judgment of how the conversation progressed."""

    total_messages: int = 0
    user_messages: int = 0
    bot_messages: int = 0
    topic_changes: int = Field(ge=0)
    user_satisfaction_trend: Annotated[
        Literal["improving", "declining", "stable"], BeforeValidator(_normalize_label)
    ]
    key_topics: list[str] = Field(default_factory=list)
    conversation_quality: Score
    misunderstandings: list[str] = Field(default_factory=list)


class EndingAnalysis(CompletionModel):
    """Judgment of how the conversation ended."""

    ended_by: Annotated[Literal["user", "bot", "timeout"], BeforeValidator(_normalize_label)]
    resolution: Annotated[
        Literal["resolved", "unresolved", "abandoned"], BeforeValidator(_normalize_label)
    ]
    final_sentiment: Annotated[
        Literal["satisfied", "neutral", "frustrated"], BeforeValidator(_normalize_label)
    ]
    last_user_message: str | None = None
    reason_for_ending: str
    follow_up_needed: bool


class ImprovementSuggestion(CompletionModel):
    """Suggested change to the assistant's knowledge or behaviour."""

    category: Annotated[
        Literal["knowledge", "response", "flow", "clarification"], BeforeValidator(_normalize_label)
    ]
    issue: str
    suggestion: str
    priority: Level
    examples: list[str] = Field(default_factory=list)


class ProblemType(CompletionModel):
    """Problem discussed in a session. Frequency is 1 per session."""

    type: str
    description: str = ""
    frequency: int = 1
    severity: Level
    examples: list[str] = Field(default_factory=list)


class ConversationAnalysis(BaseModel):
    """The five judgments produced for one session."""

    session_id: str
    first_user_request: RequestAnalysis
    conversation_flow: FlowAnalysis
    ending_analysis: EndingAnalysis
    improvement_suggestions: list[ImprovementSuggestion] = Field(default_factory=list)
    problem_types: list[ProblemType] = Field(default_factory=list)


class SessionAnalysisOutcome(BaseModel):
    """Result of analyzing one session within a batch run."""

    session_id: str
    analysis: ConversationAnalysis | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.analysis is not None


# Cross-session report


class RequestPattern(BaseModel):
    pattern: str
    count: int
    percentage: float
    average_clarity: float


class ConversationPattern(BaseModel):
    pattern: str
    frequency: int
    average_quality: float
    common_issues: list[str] = Field(default_factory=list)


class EndingPattern(BaseModel):
    type: str
    count: int
    percentage: float
    common_reasons: list[str] = Field(default_factory=list)


class RankedImprovement(ImprovementSuggestion):
    """Deduplicated suggestion with the number of sessions that raised it."""

    frequency: int = 1


class ProblemTypeStats(BaseModel):
    type: str
    occurrences: int
    percentage: float
    severity: Literal["low", "medium", "high"]
    trend: Literal["increasing", "decreasing", "stable"] = "stable"


class TranscriptMessage(BaseModel):
    timestamp: datetime | None = None
    is_user: bool
    content: str
    has_actions: bool = False
    message_length: int = 0


class ConversationTranscript(BaseModel):
    """Session messages paired with the analysis, for display."""

    session_id: str
    start_time: datetime
    end_time: datetime
    platform: str
    message_count: int
    duration: float
    messages: list[TranscriptMessage] = Field(default_factory=list)
    analysis: ConversationAnalysis | None = None


class AggregatedAnalysis(BaseModel):
    """Report merging many per-session analyses."""

    total_sessions: int
    analysis_date: datetime
    common_first_requests: list[RequestPattern] = Field(default_factory=list)
    conversation_patterns: list[ConversationPattern] = Field(default_factory=list)
    ending_patterns: list[EndingPattern] = Field(default_factory=list)
    top_improvements: list[RankedImprovement] = Field(default_factory=list)
    problem_type_distribution: list[ProblemTypeStats] = Field(default_factory=list)
    conversation_transcripts: list[ConversationTranscript] = Field(default_factory=list)
    failed_sessions: list[str] = Field(default_factory=list)
