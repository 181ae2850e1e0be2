"""Cross-session aggregation tests."""

from datetime import datetime, timezone

from src.features.conversation_analysis import aggregate_analyses

GENERATED_AT = datetime(2026, 3, 3, 7, 0, tzinfo=timezone.utc)


def suggestion(issue="Missing refund policy", priority="medium", examples=(), category="knowledge"):
    return {
        "category": category,
        "issue": issue,
        "suggestion": f"Fix: {issue}",
        "priority": priority,
        "examples": list(examples),
    }


def test_empty_input():
    aggregated = aggregate_analyses([], generated_at=GENERATED_AT)

    assert aggregated.total_sessions == 0
    assert aggregated.analysis_date == GENERATED_AT
    assert aggregated.common_first_requests == []
    assert aggregated.top_improvements == []
    assert aggregated.conversation_transcripts == []


def test_request_patterns_average_clarity(make_analysis):
    analyses = [
        make_analysis("s1", intent="password reset", clarity=80),
        make_analysis("s2", intent="password reset", clarity=60),
        make_analysis("s3", intent="billing question", clarity=90),
    ]
    (reset, billing) = aggregate_analyses(analyses).common_first_requests

    assert reset.pattern == "password reset"
    assert reset.count == 2
    assert reset.average_clarity == 70
    assert round(reset.percentage, 2) == 66.67
    assert billing.count == 1


def test_flow_quality_is_running_pair_average(make_analysis):
    analyses = [
        make_analysis("s1", quality=80, trend="improving", topic_changes=1),
        make_analysis("s2", quality=60, trend="improving", topic_changes=1),
    ]
    (pattern,) = aggregate_analyses(analyses).conversation_patterns

    assert pattern.pattern == "improving_1topics"
    assert pattern.frequency == 2
    assert pattern.average_quality == 50


def test_ending_patterns(make_analysis):
    analyses = [
        make_analysis("s1", resolution="resolved", ended_by="user"),
        make_analysis("s2", resolution="resolved", ended_by="user"),
        make_analysis("s3", resolution="abandoned", ended_by="timeout"),
        make_analysis("s4", resolution="unresolved", ended_by="bot"),
    ]
    endings = aggregate_analyses(analyses).ending_patterns

    assert [e.type for e in endings] == ["resolved_user", "abandoned_timeout", "unresolved_bot"]
    assert endings[0].percentage == 50.0
    assert endings[0].common_reasons == ["question answered", "question answered"]


def test_duplicate_improvements_merge(make_analysis):
    analyses = [
        make_analysis("s1", suggestions=[suggestion(examples=["a", "b"])]),
        make_analysis("s2", suggestions=[suggestion(examples=["b", "c", "d"])]),
    ]
    (improvement,) = aggregate_analyses(analyses).top_improvements

    assert improvement.frequency == 2
    assert improvement.examples == ["a", "b", "c"]


def test_improvement_key_uses_first_fifty_characters(make_analysis):
    prefix = "x" * 60
    analyses = [
        make_analysis("s1", suggestions=[suggestion(issue=prefix + " first")]),
        make_analysis("s2", suggestions=[suggestion(issue=prefix + " second")]),
    ]
    (improvement,) = aggregate_analyses(analyses).top_improvements

    assert improvement.issue == prefix + " first"
    assert improvement.frequency == 2


def test_improvements_rank_priority_before_frequency(make_analysis):
    analyses = [
        make_analysis(f"s{i}", suggestions=[suggestion(issue="Slow answers", priority="low")])
        for i in range(3)
    ]
    analyses.append(make_analysis("s9", suggestions=[
        suggestion(issue="Wrong prices", priority="high"),
        suggestion(issue="Unclear steps", priority="medium", category="response"),
    ]))
    ranked = aggregate_analyses(analyses).top_improvements

    assert [s.issue for s in ranked] == ["Wrong prices", "Unclear steps", "Slow answers"]
    assert ranked[-1].frequency == 3


def test_improvements_capped_at_ten(make_analysis):
    analyses = [make_analysis("s1", suggestions=[suggestion(issue=f"Issue {i}") for i in range(12)])]
    assert len(aggregate_analyses(analyses).top_improvements) == 10


def test_problem_type_distribution(make_analysis):
    analyses = [
        make_analysis("s1", problems=[{"type": "login", "severity": "high"}]),
        make_analysis("s2", problems=[{"type": "login", "severity": "low"}, {"type": "billing", "severity": "low"}]),
    ]
    (login, billing) = aggregate_analyses(analyses).problem_type_distribution

    assert login.occurrences == 2
    assert login.severity == "high"
    assert login.percentage == 100.0
    assert login.trend == "stable"
    assert billing.percentage == 50.0


def test_transcripts_join_sessions(make_analysis, make_session):
    session = make_session("s1", turns=[("Hi", "Hello"), ("Bye", "Goodbye")], session_duration=90)
    analyses = [make_analysis("s1"), make_analysis("ghost")]

    transcripts = aggregate_analyses(analyses, [session], generated_at=GENERATED_AT).conversation_transcripts

    known, missing = transcripts
    assert known.platform == "android"
    assert known.duration == 1.5
    assert [m.content for m in known.messages] == ["Hi", "Hello", "Bye", "Goodbye"]
    assert missing.session_id == "ghost"
    assert missing.platform == "unknown"
    assert missing.messages == []
    assert missing.start_time == missing.end_time == GENERATED_AT


def test_failed_sessions_are_reported(make_analysis):
    aggregated = aggregate_analyses([make_analysis("s1")], failed_sessions=["s2", "s3"])

    assert aggregated.total_sessions == 1
    assert aggregated.failed_sessions == ["s2", "s3"]
