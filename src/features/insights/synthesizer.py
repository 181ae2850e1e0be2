"""Rule-based insights over an analytics aggregate."""

from typing import Callable

from src.features.analytics.models import Analytics, HourlyCount

from .models import Alert, Insights, KeyMetric, Trend

TREND_DEAD_BAND = 0.05

# Alert thresholds
HIGH_ERROR_RATE = 10
LOW_RESOLVED_RATE = 60
LOW_RATING = 3
HIGH_NEGATIVE_SENTIMENT = 30
SLOW_P95_MS = 5000
PEAK_HOUR_SHARE = 0.15

# Recommendation thresholds
ELEVATED_ERROR_RATE = 5
WEAK_RESOLVED_RATE = 70
ESCALATION_NEGATIVE_SENTIMENT = 25
BUSY_HOUR_SHARE = 0.10
DOMINANT_CATEGORY_SHARE = 30
LONG_SESSION_SECONDS = 600

# Trend thresholds
TRAFFIC_GROWTH = 1.2
OFF_HOURS_RATIO = 0.3


def synthesize(current: Analytics, previous: Analytics | None = None) -> Insights:
    """
    Derive insights from an analytics aggregate.

    Args:
        current: Analytics for the reported period
        previous: Analytics for the preceding period, enables change/trend on key metrics

    Returns:
        Insights with summary, key metrics, alerts, recommendations, trends and highlights
    """
    return Insights(
        summary=generate_summary(current),
        key_metrics=generate_key_metrics(current, previous),
        alerts=generate_alerts(current),
        recommendations=generate_recommendations(current),
        trends_analysis=analyze_trends(current),
        performance_highlights=performance_highlights(current),
    )


def percent_change(current: float, previous: float) -> str:
    if previous == 0:
        return "+100%"
    change = (current - previous) / previous * 100
    return f"{change:+.1f}%"


def trend_direction(current: float, previous: float) -> Trend:
    if current > previous * (1 + TREND_DEAD_BAND):
        return "up"
    if current < previous * (1 - TREND_DEAD_BAND):
        return "down"
    return "stable"


_METRICS: list[tuple[str, Callable[[Analytics], float], Callable[[float], str | int]]] = [
    ("Total Conversations", lambda a: a.total_conversations, int),
    ("Active Users", lambda a: a.unique_users, int),
    ("Resolution Rate", lambda a: a.resolved_rate, lambda v: f"{v:.1f}%"),
    ("Average Rating", lambda a: a.average_rating, lambda v: f"{v:.2f}"),
    ("Error Rate", lambda a: a.error_rate, lambda v: f"{v:.1f}%"),
    ("Avg Session Duration", lambda a: a.average_session_duration, lambda v: f"{round(v / 60)} min"),
]


def generate_key_metrics(current: Analytics, previous: Analytics | None = None) -> list[KeyMetric]:
    metrics = []
    for name, getter, fmt in _METRICS:
        value = getter(current)
        if previous is None:
            metrics.append(KeyMetric(name=name, value=fmt(value)))
            continue
        prior = getter(previous)
        metrics.append(KeyMetric(
            name=name,
            value=fmt(value),
            change=percent_change(value, prior),
            trend=trend_direction(value, prior),
        ))
    return metrics


def peak_hour(hourly: list[HourlyCount]) -> HourlyCount | None:
    """Busiest hour; the earliest hour wins ties."""
    peak = None
    for hour in hourly:
        if peak is None or hour.count > peak.count:
            peak = hour
    return peak


def generate_alerts(analytics: Analytics) -> list[Alert]:
    alerts = []

    if analytics.error_rate > HIGH_ERROR_RATE:
        alerts.append(Alert(
            severity="high",
            message=f"High error rate detected: {analytics.error_rate:.1f}%",
            metric="errorRate",
            value=analytics.error_rate,
        ))

    if analytics.resolved_rate < LOW_RESOLVED_RATE:
        alerts.append(Alert(
            severity="high",
            message=f"Low resolution rate: {analytics.resolved_rate:.1f}%",
            metric="resolvedRate",
            value=analytics.resolved_rate,
        ))

    if 0 < analytics.average_rating < LOW_RATING:
        alerts.append(Alert(
            severity="medium",
            message=f"Low average rating: {analytics.average_rating:.2f}/5",
            metric="averageRating",
            value=analytics.average_rating,
        ))

    negative = analytics.user_sentiment.negative
    if negative > HIGH_NEGATIVE_SENTIMENT:
        alerts.append(Alert(
            severity="medium",
            message=f"High negative sentiment: {negative:.1f}%",
            metric="sentiment",
            value=negative,
        ))

    p95 = analytics.response_time_analysis.p95
    if p95 > SLOW_P95_MS:
        alerts.append(Alert(
            severity="low",
            message=f"Slow response times - P95: {p95 / 1000:.1f}s",
            metric="responseTime",
            value=p95,
        ))

    peak = peak_hour(analytics.hourly_distribution)
    if peak and peak.count > analytics.total_conversations * PEAK_HOUR_SHARE:
        alerts.append(Alert(
            severity="low",
            message=f"High traffic concentration at {peak.hour}:00 ({peak.count} conversations)",
            metric="trafficPeak",
            value=peak.count,
        ))

    return alerts


def generate_recommendations(analytics: Analytics) -> list[str]:
    recommendations = []

    if analytics.error_rate > ELEVATED_ERROR_RATE:
        recommendations.append("Investigate and fix the top error patterns to improve user experience")

    if analytics.resolved_rate < WEAK_RESOLVED_RATE:
        recommendations.append("Review unresolved conversations to identify gaps in bot knowledge")

    if analytics.common_issues:
        top_issue = analytics.common_issues[0]
        recommendations.append(
            f'Create targeted responses for "{top_issue.pattern}" issues ({top_issue.frequency} occurrences)'
        )

    if analytics.user_sentiment.negative > ESCALATION_NEGATIVE_SENTIMENT:
        recommendations.append("Implement sentiment-based escalation to human agents for negative interactions")

    busy_hours = [
        h.hour for h in analytics.hourly_distribution
        if h.count > analytics.total_conversations * BUSY_HOUR_SHARE
    ]
    if busy_hours:
        hours = ", ".join(f"{hour}:00" for hour in sorted(busy_hours))
        recommendations.append(f"Consider scaling resources during peak hours: {hours}")

    if analytics.top_categories and analytics.top_categories[0].percentage > DOMINANT_CATEGORY_SHARE:
        top = analytics.top_categories[0]
        recommendations.append(
            f'Enhance bot capabilities for "{top.category}" category ({top.percentage:.1f}% of queries)'
        )

    if analytics.average_session_duration > LONG_SESSION_SECONDS:
        recommendations.append(
            "Long session durations detected - optimize conversation flow for quicker resolutions"
        )

    return recommendations


def analyze_trends(analytics: Analytics) -> str:
    trends = []

    daily = analytics.daily_trend
    if len(daily) > 7:
        recent = daily[-7:]
        prior = daily[-14:-7]
        recent_avg = sum(day.count for day in recent) / len(recent)
        prior_avg = sum(day.count for day in prior) / len(prior)
        if prior_avg > 0 and recent_avg > prior_avg * TRAFFIC_GROWTH:
            trends.append(f"Traffic increased {(recent_avg / prior_avg - 1) * 100:.0f}% this week")

    hourly = analytics.hourly_distribution
    night_traffic = sum(h.count for h in hourly[:8])
    business_traffic = sum(h.count for h in hourly[8:20])
    if night_traffic > business_traffic * OFF_HOURS_RATIO:
        trends.append("Significant off-hours activity detected (00:00-07:59)")

    weekdays = analytics.weekday_distribution
    if len(weekdays) == 7:
        weekday_avg = sum(d.count for d in weekdays[:5]) / 5
        weekend_avg = sum(d.count for d in weekdays[5:]) / 2
        if weekend_avg > weekday_avg:
            trends.append(
                f"Weekend traffic exceeds weekday traffic "
                f"({weekend_avg:.1f} vs {weekday_avg:.1f} conversations per day of week)"
            )

    if len(analytics.top_categories) >= 2:
        top_two = ", ".join(
            f"{c.category} ({c.percentage:.0f}%)" for c in analytics.top_categories[:2]
        )
        trends.append(f"Top categories: {top_two}")

    return ". ".join(trends) or "No significant trends detected in the current period."


def performance_highlights(analytics: Analytics) -> list[str]:
    highlights = []

    if analytics.resolved_rate > 80:
        highlights.append(f"Excellent resolution rate: {analytics.resolved_rate:.1f}%")

    if analytics.average_rating >= 4:
        highlights.append(f"High user satisfaction: {analytics.average_rating:.1f}/5 rating")

    if analytics.error_rate < 2:
        highlights.append(f"Low error rate: {analytics.error_rate:.1f}%")

    if analytics.user_sentiment.positive > 60:
        highlights.append(f"Positive user sentiment: {analytics.user_sentiment.positive:.0f}%")

    median = analytics.response_time_analysis.median
    if 0 < median < 1000:
        highlights.append(f"Fast median response time: {median / 1000:.1f}s")

    return highlights


def generate_summary(analytics: Analytics) -> str:
    if analytics.daily_trend:
        period = f"{analytics.daily_trend[0].date} to {analytics.daily_trend[-1].date}"
    else:
        period = "current period"

    summary = (
        f"During {period}, the support bot handled {analytics.total_conversations} conversations "
        f"from {analytics.unique_users} unique users. "
        f"The overall resolution rate was {analytics.resolved_rate:.1f}%"
    )

    if analytics.average_rating > 0:
        summary += f" with an average user rating of {analytics.average_rating:.1f}/5. "
    else:
        summary += ". "

    if analytics.error_rate > ELEVATED_ERROR_RATE:
        summary += f"Note: Error rate is elevated at {analytics.error_rate:.1f}%. "

    if analytics.top_categories:
        top = analytics.top_categories[0]
        summary += (
            f'The most common query category was "{top.category}" '
            f"({top.percentage:.0f}% of conversations)."
        )

    return summary.strip()
