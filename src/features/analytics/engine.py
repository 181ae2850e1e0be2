"""Pure statistics over interaction logs.

Every function here is deterministic: hour and date buckets come from each
log's own timestamp, never from the wall clock, and empty input resolves to
zero values instead of raising.
"""

from math import floor
from typing import Callable, Iterable, Sequence

from src.features.sessions.models import InteractionLog

from .models import (
    Analytics,
    CategoryCount,
    DailyCount,
    HourlyCount,
    IssuePattern,
    PlatformCount,
    ResponseTimeStats,
    SentimentAnalysis,
    VersionCount,
    WeekdayCount,
)

TOP_N = 10
DAILY_TREND_DAYS = 30
MAX_ISSUE_EXAMPLES = 3
ISSUE_EXAMPLE_LENGTH = 100

ISSUE_KEYWORDS = [
    "error", "not working", "broken", "failed", "issue", "problem",
    "help", "stuck", "crash", "slow", "timeout", "login", "password",
    "payment", "checkout", "loading", "display", "missing", "wrong",
]

POSITIVE_WORDS = ["thank", "great", "excellent", "good", "perfect", "amazing", "helpful", "solved"]
NEGATIVE_WORDS = ["bad", "terrible", "awful", "hate", "angry", "frustrated", "disappointed", "useless"]


def compute_analytics(logs: Iterable[InteractionLog]) -> Analytics:
    """Compute the full analytics aggregate from interaction logs."""
    logs_list = list(logs)

    return Analytics(
        total_conversations=len(logs_list),
        unique_users=len({log.user_id for log in logs_list if log.user_id}),
        average_session_duration=_positive_mean(log.session_duration for log in logs_list),
        average_rating=_positive_mean(log.rating for log in logs_list),
        resolved_rate=_rate(logs_list, lambda log: log.resolved),
        error_rate=_rate(logs_list, lambda log: log.error),
        top_categories=[
            CategoryCount(category=key, count=count, percentage=pct)
            for key, count, pct in _ranked_counts(logs_list, lambda log: log.category, limit=TOP_N)
        ],
        hourly_distribution=hourly_distribution(logs_list),
        weekday_distribution=weekday_distribution(logs_list),
        daily_trend=daily_trend(logs_list),
        common_issues=find_common_issues(logs_list),
        user_sentiment=analyze_sentiment(logs_list),
        response_time_analysis=response_time_stats(
            log.metadata.response_time for log in logs_list if log.metadata.response_time
        ),
        platform_distribution=[
            PlatformCount(platform=key, count=count, percentage=pct)
            for key, count, pct in _ranked_counts(logs_list, lambda log: log.platform)
        ],
        app_versions=[
            VersionCount(version=key, count=count, percentage=pct)
            for key, count, pct in _ranked_counts(
                logs_list, lambda log: log.metadata.app_version, limit=TOP_N
            )
        ],
        average_messages_per_session=_average_messages_per_session(logs_list),
        sessions_with_actions=len(
            {log.conversation_id for log in logs_list if log.metadata.has_actions and log.conversation_id}
        ),
        total_messages=sum(log.metadata.message_count or 1 for log in logs_list),
        average_message_length=_average_message_length(logs_list),
    )


def hourly_distribution(logs: Sequence[InteractionLog]) -> list[HourlyCount]:
    """Bucket logs by hour of day. Always returns 24 entries."""
    counts = [0] * 24
    for log in logs:
        if log.timestamp:
            counts[log.timestamp.hour] += 1
    return [HourlyCount(hour=hour, count=count) for hour, count in enumerate(counts)]


def weekday_distribution(logs: Sequence[InteractionLog]) -> list[WeekdayCount]:
    """Bucket logs by day of week (Monday = 0). Always returns 7 entries."""
    counts = [0] * 7
    for log in logs:
        if log.timestamp:
            counts[log.timestamp.weekday()] += 1
    return [WeekdayCount(weekday=day, count=count) for day, count in enumerate(counts)]


def daily_trend(logs: Sequence[InteractionLog], days: int = DAILY_TREND_DAYS) -> list[DailyCount]:
    """Per-date counts for the most recent `days` dates present, oldest first."""
    daily: dict[str, dict[str, int]] = {}
    for log in logs:
        if not log.timestamp:
            continue
        date = log.timestamp.date().isoformat()
        bucket = daily.setdefault(date, {"count": 0, "resolved": 0, "errors": 0})
        bucket["count"] += 1
        if log.resolved:
            bucket["resolved"] += 1
        if log.error:
            bucket["errors"] += 1

    return [DailyCount(date=date, **daily[date]) for date in sorted(daily)][-days:]


def find_common_issues(logs: Sequence[InteractionLog]) -> list[IssuePattern]:
    """Count issue keywords in user messages, keeping a few truncated examples."""
    patterns: dict[str, dict] = {}
    for log in logs:
        if not log.user_message:
            continue
        message = log.user_message.lower()
        for keyword in ISSUE_KEYWORDS:
            if keyword not in message:
                continue
            pattern = patterns.setdefault(keyword, {"count": 0, "examples": []})
            pattern["count"] += 1
            example = log.user_message[:ISSUE_EXAMPLE_LENGTH]
            if len(pattern["examples"]) < MAX_ISSUE_EXAMPLES and example not in pattern["examples"]:
                pattern["examples"].append(example)

    ranked = sorted(patterns.items(), key=lambda item: item[1]["count"], reverse=True)[:TOP_N]
    return [
        IssuePattern(pattern=keyword, frequency=data["count"], examples=data["examples"])
        for keyword, data in ranked
    ]


def analyze_sentiment(logs: Sequence[InteractionLog]) -> SentimentAnalysis:
    """Word-list sentiment over user messages, as percentages of classified logs."""
    positive = negative = neutral = 0
    for log in logs:
        if not log.user_message:
            continue
        message = log.user_message.lower()
        score = sum(1 for word in POSITIVE_WORDS if word in message)
        score -= sum(1 for word in NEGATIVE_WORDS if word in message)
        if score > 0:
            positive += 1
        elif score < 0:
            negative += 1
        else:
            neutral += 1

    total = positive + negative + neutral or 1
    return SentimentAnalysis(
        positive=positive / total * 100,
        neutral=neutral / total * 100,
        negative=negative / total * 100,
    )


def response_time_stats(values: Iterable[float]) -> ResponseTimeStats:
    """
    Average and nearest-rank percentiles of response times.

    Percentiles take the value at index floor(n * q) of the sorted samples,
    clamped to the last index. No interpolation.
    """
    samples = sorted(values)
    if not samples:
        return ResponseTimeStats()

    return ResponseTimeStats(
        average=sum(samples) / len(samples),
        median=_nearest_rank(samples, 0.5),
        p95=_nearest_rank(samples, 0.95),
        p99=_nearest_rank(samples, 0.99),
    )


def _nearest_rank(sorted_values: list[float], quantile: float) -> float:
    index = min(floor(len(sorted_values) * quantile), len(sorted_values) - 1)
    return sorted_values[index]


def _rate(logs: Sequence[InteractionLog], predicate: Callable[[InteractionLog], bool]) -> float:
    if not logs:
        return 0.0
    return sum(1 for log in logs if predicate(log)) / len(logs) * 100


def _positive_mean(values: Iterable[float]) -> float:
    present = [value for value in values if value and value > 0]
    return sum(present) / len(present) if present else 0.0


def _ranked_counts(
    logs: Sequence[InteractionLog],
    key: Callable[[InteractionLog], str],
    limit: int | None = None,
) -> list[tuple[str, int, float]]:
    """Count non-empty keys, rank by count with first-seen order breaking ties."""
    counts: dict[str, int] = {}
    for log in logs:
        value = key(log)
        if value:
            counts[value] = counts.get(value, 0) + 1

    total = len(logs)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return [(value, count, count / total * 100) for value, count in ranked]


def _average_messages_per_session(logs: Sequence[InteractionLog]) -> float:
    per_session: dict[str, int] = {}
    for log in logs:
        if log.conversation_id:
            per_session[log.conversation_id] = per_session.get(log.conversation_id, 0) + 1
    if not per_session:
        return 0.0
    return sum(per_session.values()) / len(per_session)


def _average_message_length(logs: Sequence[InteractionLog]) -> float:
    lengths = []
    for log in logs:
        if log.user_message:
            lengths.append(len(log.user_message))
        if log.bot_response:
            lengths.append(len(log.bot_response))
    return sum(lengths) / len(lengths) if lengths else 0.0
