"""HTML and plain-text renderings of insights."""

from datetime import datetime
from html import escape

from .models import Insights, KeyMetric

TREND_ARROWS = {"up": "↑", "down": "↓", "stable": "→"}
RULE = "─" * 50

_STYLE = """
        body { font-family: Arial, sans-serif; max-width: 800px; margin: 0 auto; padding: 20px; }
        h1 { color: #333; }
        h2 { color: #666; border-bottom: 2px solid #eee; padding-bottom: 10px; }
        .summary { background: #f5f5f5; padding: 15px; border-radius: 5px; margin-bottom: 20px; }
        .metrics { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 15px; }
        .metric { background: white; border: 1px solid #ddd; padding: 15px; border-radius: 5px; }
        .metric-name { font-size: 12px; color: #666; }
        .metric-value { font-size: 24px; font-weight: bold; color: #333; }
        .metric-change { font-size: 12px; color: #666; }
        .trend-up { color: #4CAF50; }
        .trend-down { color: #f44336; }
        .alert { padding: 10px; margin: 10px 0; border-radius: 5px; }
        .alert-high { background: #ffebee; border-left: 4px solid #f44336; }
        .alert-medium { background: #fff3e0; border-left: 4px solid #ff9800; }
        .alert-low { background: #e3f2fd; border-left: 4px solid #2196F3; }
        .recommendation { background: #e8f5e9; padding: 10px; margin: 10px 0; border-radius: 5px; }
        .highlight { background: #f3e5f5; padding: 10px; margin: 10px 0; border-radius: 5px; }
        .footer { font-size: 12px; color: #666; margin-top: 40px; }
"""


def _metric_html(metric: KeyMetric) -> str:
    trend = ""
    if metric.trend:
        trend = f' <span class="trend-{metric.trend}">{TREND_ARROWS[metric.trend]}</span>'
    change = f'<div class="metric-change">{escape(metric.change)}</div>' if metric.change else ""
    return (
        '<div class="metric">'
        f'<div class="metric-name">{escape(metric.name)}</div>'
        f'<div class="metric-value">{escape(str(metric.value))}{trend}</div>'
        f"{change}"
        "</div>"
    )


def format_insights_html(insights: Insights, generated_at: datetime) -> str:
    """Render insights as a standalone HTML document."""
    parts = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        f'<head><meta charset="UTF-8"><style>{_STYLE}</style></head>',
        "<body>",
        "<h1>Support Bot Analytics Report</h1>",
        f'<div class="summary"><h2>Summary</h2><p>{escape(insights.summary)}</p></div>',
        "<h2>Key Metrics</h2>",
        '<div class="metrics">',
        *(_metric_html(metric) for metric in insights.key_metrics),
        "</div>",
    ]

    if insights.alerts:
        parts.append("<h2>Alerts</h2>")
        parts.extend(
            f'<div class="alert alert-{alert.severity}">'
            f"<strong>{alert.severity.upper()}:</strong> {escape(alert.message)}</div>"
            for alert in insights.alerts
        )

    if insights.performance_highlights:
        parts.append("<h2>Performance Highlights</h2>")
        parts.extend(
            f'<div class="highlight">✓ {escape(highlight)}</div>'
            for highlight in insights.performance_highlights
        )

    parts.append("<h2>Recommendations</h2>")
    parts.extend(
        f'<div class="recommendation">💡 {escape(rec)}</div>' for rec in insights.recommendations
    )

    parts.extend([
        "<h2>Trends Analysis</h2>",
        f"<p>{escape(insights.trends_analysis)}</p>",
        f'<p class="footer">Generated on {generated_at:%Y-%m-%d %H:%M:%S %Z}</p>',
        "</body>",
        "</html>",
    ])
    return "\n".join(parts)


def format_insights_text(insights: Insights, generated_at: datetime) -> str:
    """Render insights as plain text."""
    lines = ["=== SUPPORT BOT ANALYTICS REPORT ===", "", "SUMMARY", RULE, insights.summary, ""]

    lines.extend(["KEY METRICS", RULE])
    for metric in insights.key_metrics:
        line = f"{metric.name}: {metric.value}"
        if metric.change:
            line += f" ({metric.change})"
        if metric.trend:
            line += f" {TREND_ARROWS[metric.trend]}"
        lines.append(line)
    lines.append("")

    if insights.alerts:
        lines.extend(["ALERTS", RULE])
        lines.extend(f"[{alert.severity.upper()}] {alert.message}" for alert in insights.alerts)
        lines.append("")

    if insights.performance_highlights:
        lines.extend(["PERFORMANCE HIGHLIGHTS", RULE])
        lines.extend(f"✓ {highlight}" for highlight in insights.performance_highlights)
        lines.append("")

    lines.extend(["RECOMMENDATIONS", RULE])
    lines.extend(f"{index}. {rec}" for index, rec in enumerate(insights.recommendations, start=1))
    lines.append("")

    lines.extend(["TRENDS ANALYSIS", RULE, insights.trends_analysis, ""])
    lines.extend([RULE, f"Generated on {generated_at:%Y-%m-%d %H:%M:%S %Z}".rstrip()])
    return "\n".join(lines) + "\n"
