"""Merge per-session analyses into one cross-session report."""

from datetime import datetime, timezone
from typing import Iterable

from src.features.sessions.models import EnrichedSession

from .models import (
    AggregatedAnalysis,
    ConversationAnalysis,
    ConversationPattern,
    ConversationTranscript,
    EndingPattern,
    ProblemTypeStats,
    RankedImprovement,
    RequestPattern,
    TranscriptMessage,
)

TOP_N = 10
IMPROVEMENT_KEY_LENGTH = 50
MAX_IMPROVEMENT_EXAMPLES = 3
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def aggregate_analyses(
    analyses: list[ConversationAnalysis],
    sessions: list[EnrichedSession] | None = None,
    generated_at: datetime | None = None,
    failed_sessions: Iterable[str] = (),
) -> AggregatedAnalysis:
    """
    Build the cross-session report.

    Args:
        analyses: Successful per-session analyses
        sessions: Originating sessions, used for transcripts
        generated_at: Report timestamp; also stands in for unknown session times
        failed_sessions: IDs of sessions whose analysis failed

    Returns:
        Aggregated analysis with ranked patterns and transcripts
    """
    generated_at = generated_at or datetime.now(timezone.utc)

    return AggregatedAnalysis(
        total_sessions=len(analyses),
        analysis_date=generated_at,
        common_first_requests=request_patterns(analyses),
        conversation_patterns=flow_patterns(analyses),
        ending_patterns=ending_patterns(analyses),
        top_improvements=rank_improvements(analyses),
        problem_type_distribution=problem_type_distribution(analyses),
        conversation_transcripts=build_transcripts(analyses, sessions or [], generated_at),
        failed_sessions=list(failed_sessions),
    )


def _percentage(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def request_patterns(analyses: list[ConversationAnalysis]) -> list[RequestPattern]:
    """Group first requests by exact intent."""
    groups: dict[str, list[int]] = {}
    for analysis in analyses:
        request = analysis.first_user_request
        groups.setdefault(request.intent, []).append(request.clarity)

    patterns = [
        RequestPattern(
            pattern=intent,
            count=len(clarity),
            percentage=_percentage(len(clarity), len(analyses)),
            average_clarity=sum(clarity) / len(clarity),
        )
        for intent, clarity in groups.items()
    ]
    return sorted(patterns, key=lambda p: p.count, reverse=True)[:TOP_N]


def flow_patterns(analyses: list[ConversationAnalysis]) -> list[ConversationPattern]:
    """
    Group flows by satisfaction trend and number of topic changes.

    The quality score is a running two-point average seeded at zero, so it
    weights recent sessions more and is not a true mean.
    """
    patterns: dict[str, ConversationPattern] = {}
    for analysis in analyses:
        flow = analysis.conversation_flow
        key = f"{flow.user_satisfaction_trend}_{flow.topic_changes}topics"
        pattern = patterns.setdefault(
            key, ConversationPattern(pattern=key, frequency=0, average_quality=0.0)
        )
        pattern.frequency += 1
        pattern.average_quality = (pattern.average_quality + flow.conversation_quality) / 2
        pattern.common_issues.extend(flow.misunderstandings)

    return sorted(patterns.values(), key=lambda p: p.frequency, reverse=True)[:TOP_N]


def ending_patterns(analyses: list[ConversationAnalysis]) -> list[EndingPattern]:
    """Group endings by resolution and who ended the conversation."""
    patterns: dict[str, EndingPattern] = {}
    for analysis in analyses:
        ending = analysis.ending_analysis
        key = f"{ending.resolution}_{ending.ended_by}"
        pattern = patterns.setdefault(key, EndingPattern(type=key, count=0, percentage=0.0))
        pattern.count += 1
        pattern.common_reasons.append(ending.reason_for_ending)

    for pattern in patterns.values():
        pattern.percentage = _percentage(pattern.count, len(analyses))
    return sorted(patterns.values(), key=lambda p: p.count, reverse=True)


def improvement_key(category: str, issue: str) -> str:
    return f"{category}-{issue}"[:IMPROVEMENT_KEY_LENGTH]


def rank_improvements(analyses: list[ConversationAnalysis]) -> list[RankedImprovement]:
    """
    Deduplicate improvement suggestions and rank them.

    Suggestions sharing the first 50 characters of "category-issue" merge:
    the first one is kept, its frequency counts the duplicates and its
    examples become the de-duplicated union, capped at three. Ranking is by
    priority, then by frequency.
    """
    merged: dict[str, RankedImprovement] = {}
    for analysis in analyses:
        for suggestion in analysis.improvement_suggestions:
            key = improvement_key(suggestion.category, suggestion.issue)
            existing = merged.get(key)
            if existing is None:
                merged[key] = RankedImprovement(**suggestion.model_dump(), frequency=1)
                continue
            existing.frequency += 1
            examples = list(dict.fromkeys(existing.examples + suggestion.examples))
            existing.examples = examples[:MAX_IMPROVEMENT_EXAMPLES]

    ranked = sorted(
        merged.values(),
        key=lambda s: (PRIORITY_ORDER[s.priority], -s.frequency),
    )
    return ranked[:TOP_N]


def problem_type_distribution(analyses: list[ConversationAnalysis]) -> list[ProblemTypeStats]:
    """Count problem types across sessions. Severity is taken from the first occurrence."""
    stats: dict[str, ProblemTypeStats] = {}
    for analysis in analyses:
        for problem in analysis.problem_types:
            entry = stats.setdefault(
                problem.type,
                ProblemTypeStats(
                    type=problem.type, occurrences=0, percentage=0.0, severity=problem.severity
                ),
            )
            entry.occurrences += 1

    for entry in stats.values():
        entry.percentage = _percentage(entry.occurrences, len(analyses))
    # TODO: derive trend from the previous report run once reports are persisted
    return sorted(stats.values(), key=lambda p: p.occurrences, reverse=True)


def build_transcripts(
    analyses: list[ConversationAnalysis],
    sessions: list[EnrichedSession],
    default_time: datetime,
) -> list[ConversationTranscript]:
    """Pair each analysis with its session's messages for display."""
    sessions_by_id = {session.id: session for session in sessions}

    transcripts = []
    for analysis in analyses:
        session = sessions_by_id.get(analysis.session_id)
        if session is None:
            transcripts.append(ConversationTranscript(
                session_id=analysis.session_id,
                start_time=default_time,
                end_time=default_time,
                platform="unknown",
                message_count=0,
                duration=0,
                analysis=analysis,
            ))
            continue

        transcripts.append(ConversationTranscript(
            session_id=analysis.session_id,
            start_time=session.created_at or default_time,
            end_time=session.last_message_at or default_time,
            platform=session.platform or "unknown",
            message_count=session.message_count,
            duration=session.session_duration_minutes,
            messages=[
                TranscriptMessage(
                    timestamp=msg.timestamp,
                    is_user=msg.is_user,
                    content=msg.content,
                    has_actions=msg.has_actions,
                    message_length=msg.message_length,
                )
                for msg in session.messages
            ],
            analysis=analysis,
        ))
    return transcripts
