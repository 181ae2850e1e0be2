"""HTML rendering of the cross-session conversation analysis."""

from datetime import datetime
from html import escape

from .models import AggregatedAnalysis, ConversationAnalysis, ConversationTranscript

TOP_PATTERNS = 5
TOP_IMPROVEMENTS = 8
SESSION_ITEMS = 3

_STYLE = """
        body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; max-width: 900px; margin: 0 auto; padding: 20px; background-color: #f8f9fa; color: #333; line-height: 1.6; }
        .header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px; border-radius: 10px; text-align: center; margin-bottom: 30px; }
        .header h1 { margin: 0; font-size: 2.2em; }
        .header .date { font-size: 1.1em; opacity: 0.9; margin-top: 10px; }
        .overview { background: white; padding: 25px; border-radius: 10px; margin-bottom: 30px; display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 20px; }
        .stat { text-align: center; padding: 15px; background: #f8f9fa; border-radius: 8px; }
        .stat-number { font-size: 2.5em; font-weight: bold; color: #667eea; margin: 0; }
        .stat-label { font-size: 0.9em; color: #666; text-transform: uppercase; letter-spacing: 1px; }
        .section { background: white; padding: 25px; border-radius: 10px; margin-bottom: 30px; }
        .section h2 { border-bottom: 3px solid #667eea; padding-bottom: 10px; margin-bottom: 20px; font-size: 1.4em; }
        .item { padding: 15px; margin-bottom: 15px; border-left: 4px solid #e9ecef; background: #f8f9fa; border-radius: 5px; }
        .item h3 { margin: 0 0 8px 0; color: #495057; font-size: 1.1em; }
        .item .meta { font-size: 0.9em; color: #6c757d; margin-bottom: 8px; }
        .level-high { border-left-color: #dc3545; background: #fff5f5; }
        .level-medium { border-left-color: #ffc107; background: #fffdf5; }
        .level-low { border-left-color: #28a745; background: #f8fff8; }
        .badge { display: inline-block; padding: 4px 8px; border-radius: 12px; font-size: 0.8em; font-weight: bold; text-transform: uppercase; }
        .badge-high { background: #dc3545; color: white; }
        .badge-medium { background: #ffc107; color: #333; }
        .badge-low { background: #28a745; color: white; }
        .progress-bar { background: #e9ecef; border-radius: 4px; height: 8px; margin-top: 6px; }
        .progress-fill { background: #667eea; border-radius: 4px; height: 8px; }
        .conversation-header { background: linear-gradient(135deg, #28a745 0%, #20c997 100%); color: white; padding: 20px 25px; border-radius: 10px 10px 0 0; }
        .conversation-meta { font-size: 0.9em; opacity: 0.9; }
        .message { padding: 12px 16px; margin: 8px 0; border-radius: 10px; max-width: 80%; }
        .message-user { background: #e3f2fd; border-left: 4px solid #2196f3; margin-left: auto; }
        .message-bot { background: #f3e5f5; border-left: 4px solid #9c27b0; margin-right: auto; }
        .message-timestamp { font-size: 0.8em; color: #666; margin-bottom: 4px; }
        .message-actions { font-size: 0.8em; color: #9c27b0; margin-top: 4px; }
        .analysis-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 15px; }
        .analysis-card { background: #f8f9fa; padding: 12px; border-radius: 8px; }
        .key-insights { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 25px; border-radius: 10px; margin-top: 30px; }
        .insight-label { font-weight: bold; }
        .footer { text-align: center; margin-top: 30px; padding: 20px; color: #666; font-size: 0.9em; }
"""


def _title(key: str) -> str:
    return key.replace("_", " ").title()


def _progress(percent: float) -> str:
    width = min(max(percent, 0.0), 100.0)
    return f'<div class="progress-bar"><div class="progress-fill" style="width: {width:.0f}%"></div></div>'


def _badge(level: str) -> str:
    return f'<span class="badge badge-{escape(level)}">{escape(level)}</span>'


def resolved_count(aggregated: AggregatedAnalysis) -> int:
    """Sessions whose ending pattern is a resolved one."""
    return sum(e.count for e in aggregated.ending_patterns if e.type.startswith("resolved_"))


def resolution_rate(aggregated: AggregatedAnalysis) -> float:
    if not aggregated.total_sessions:
        return 0.0
    return resolved_count(aggregated) / aggregated.total_sessions * 100


def _session_analysis_html(analysis: ConversationAnalysis) -> str:
    request = analysis.first_user_request
    flow = analysis.conversation_flow
    ending = analysis.ending_analysis
    resolution_level = "low" if ending.resolution == "resolved" else "high"

    problems = "".join(
        f"<small>{escape(p.type)}:</small> {_badge(p.severity)}<br>"
        for p in analysis.problem_types[:SESSION_ITEMS]
    )
    parts = [
        '<div class="session-analysis">',
        "<h4>AI Analysis for this Session</h4>",
        '<div class="analysis-grid">',
        '<div class="analysis-card"><strong>First Request Analysis</strong><br>'
        f"<small>Intent:</small> {escape(request.intent)}<br>"
        f"<small>Category:</small> {escape(request.category)}<br>"
        f"<small>Clarity:</small> {request.clarity}/100<br>"
        f"<small>Urgency:</small> {_badge(request.urgency)}</div>",
        '<div class="analysis-card"><strong>Conversation Quality</strong><br>'
        f"<small>Quality Score:</small> {flow.conversation_quality}/100<br>"
        f"<small>Satisfaction:</small> {flow.user_satisfaction_trend}<br>"
        f"<small>Topic Changes:</small> {flow.topic_changes}<br>"
        f"<small>Misunderstandings:</small> {len(flow.misunderstandings)}</div>",
        '<div class="analysis-card"><strong>Ending Analysis</strong><br>'
        f'<small>Resolution:</small> <span class="badge badge-{resolution_level}">{ending.resolution}</span><br>'
        f"<small>Ended by:</small> {ending.ended_by}<br>"
        f"<small>Final sentiment:</small> {ending.final_sentiment}<br>"
        f"<small>Follow-up needed:</small> {'Yes' if ending.follow_up_needed else 'No'}</div>",
        f'<div class="analysis-card"><strong>Key Problems</strong><br>{problems}</div>',
        "</div>",
    ]
    if analysis.improvement_suggestions:
        parts.append("<h5>Specific Improvements for this Session:</h5><ul>")
        parts.extend(
            f"<li><strong>[{s.priority.upper()}]</strong> {escape(s.suggestion)}</li>"
            for s in analysis.improvement_suggestions[:SESSION_ITEMS]
        )
        parts.append("</ul>")
    parts.append("</div>")
    return "".join(parts)


def _transcript_html(index: int, transcript: ConversationTranscript) -> str:
    status = transcript.analysis.ending_analysis.resolution if transcript.analysis else "unknown"
    messages = []
    for msg in transcript.messages:
        sender = "User" if msg.is_user else "Bot"
        time = f" • {msg.timestamp:%H:%M:%S}" if msg.timestamp else ""
        actions = '<div class="message-actions">Contains action buttons</div>' if msg.has_actions else ""
        messages.append(
            f'<div class="message message-{sender.lower()}">'
            f'<div class="message-timestamp">{sender}{time}</div>'
            f'<div class="message-content">{escape(msg.content)}</div>'
            f"{actions}</div>"
        )

    return (
        '<div class="conversation-section">'
        '<div class="conversation-header">'
        f'<h3 style="margin: 0;">Session {index}: {escape(transcript.platform.upper())} • '
        f"{transcript.message_count} messages</h3>"
        f'<div class="conversation-meta">{transcript.start_time:%Y-%m-%d %H:%M:%S} • '
        f"Duration: {transcript.duration:g}min • Status: {status}</div>"
        "</div>"
        '<div class="conversation-content">'
        f'<div class="messages">{"".join(messages)}</div>'
        f"{_session_analysis_html(transcript.analysis) if transcript.analysis else ''}"
        "</div></div>"
    )


def format_analysis_report(
    aggregated: AggregatedAnalysis,
    period: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> str:
    """
    Render the aggregated analysis as a standalone HTML document.

    Args:
        aggregated: Cross-session analysis
        period: Optional label such as "Last 24 hours"
        start_date: Optional start of the analyzed window
        end_date: Optional end of the analyzed window

    Returns:
        HTML document; all model-generated and user-written text is escaped
    """
    header = [
        '<div class="header">',
        "<h1>AI Conversation Analysis</h1>",
        f'<div class="date">{aggregated.analysis_date:%A, %B %d, %Y %H:%M}</div>',
    ]
    if period:
        header.append(f'<div class="date">Report Period: {escape(period)}</div>')
    if start_date and end_date:
        header.append(f'<div class="date">{start_date:%Y-%m-%d} - {end_date:%Y-%m-%d}</div>')
    header.append("</div>")

    overview = [
        '<div class="overview">',
        *(
            f'<div class="stat"><div class="stat-number">{number}</div>'
            f'<div class="stat-label">{label}</div></div>'
            for number, label in (
                (aggregated.total_sessions, "Sessions Analyzed"),
                (len(aggregated.top_improvements), "Improvements Found"),
                (len(aggregated.problem_type_distribution), "Problem Types"),
                (resolved_count(aggregated), "Resolved Sessions"),
            )
        ),
        "</div>",
    ]

    transcripts = [
        '<div class="section"><h2>Full Conversation Transcripts &amp; Analysis</h2>',
        *(
            _transcript_html(index, transcript)
            for index, transcript in enumerate(aggregated.conversation_transcripts, start=1)
        ),
        "</div>",
    ]

    requests = ['<div class="section"><h2>First User Requests Analysis</h2>']
    requests.extend(
        f'<div class="item"><h3>{escape(r.pattern)}</h3>'
        f'<div class="meta">{r.count} occurrences ({r.percentage:.1f}% of sessions)</div>'
        f"<div class=\"content\"><strong>Clarity Score:</strong> {r.average_clarity:.0f}/100"
        f"{_progress(r.average_clarity)}</div></div>"
        for r in aggregated.common_first_requests[:TOP_PATTERNS]
    )
    requests.append("</div>")

    flows = ['<div class="section"><h2>Conversation Flow Patterns</h2>']
    for p in aggregated.conversation_patterns[:TOP_PATTERNS]:
        issues = ""
        if p.common_issues:
            issues = f"<p><strong>Common Issues:</strong> {escape('; '.join(p.common_issues[:2]))}</p>"
        flows.append(
            f'<div class="item"><h3>{escape(_title(p.pattern))}</h3>'
            f'<div class="meta">{p.frequency} occurrences</div>'
            f'<div class="content"><strong>Quality Score:</strong> {p.average_quality:.0f}/100'
            f"{_progress(p.average_quality)}{issues}</div></div>"
        )
    flows.append("</div>")

    endings = ['<div class="section"><h2>How Conversations Ended</h2>']
    endings.extend(
        f'<div class="item"><h3>{escape(_title(e.type))}</h3>'
        f'<div class="meta">{e.count} occurrences ({e.percentage:.1f}%)</div>'
        f'<div class="content">{_progress(e.percentage)}'
        f"<p><strong>Common Reasons:</strong> {escape('; '.join(e.common_reasons[:2]))}</p></div></div>"
        for e in aggregated.ending_patterns[:TOP_PATTERNS]
    )
    endings.append("</div>")

    improvements = ['<div class="section"><h2>Top Improvement Suggestions</h2>']
    for index, s in enumerate(aggregated.top_improvements[:TOP_IMPROVEMENTS], start=1):
        example = f'<p><strong>Example:</strong> <em>"{escape(s.examples[0])}"</em></p>' if s.examples else ""
        improvements.append(
            f'<div class="item level-{s.priority}"><h3>{index}. {escape(s.issue)} {_badge(s.priority)}</h3>'
            f'<div class="meta">Category: {s.category} • Raised in {s.frequency} sessions</div>'
            f'<div class="content"><p><strong>Suggestion:</strong> {escape(s.suggestion)}</p>{example}</div></div>'
        )
    improvements.append("</div>")

    problems = ['<div class="section"><h2>Problem Types Distribution</h2>']
    problems.extend(
        f'<div class="item level-{p.severity}"><h3>{escape(p.type)} {_badge(p.severity)}</h3>'
        f'<div class="meta">{p.occurrences} occurrences ({p.percentage:.1f}%)</div>'
        f'<div class="content">{_progress(p.percentage)}<p><strong>Trend:</strong> {p.trend}</p></div></div>'
        for p in aggregated.problem_type_distribution[:TOP_IMPROVEMENTS]
    )
    problems.append("</div>")

    top_request = aggregated.common_first_requests[0].pattern if aggregated.common_first_requests else "N/A"
    top_ending = aggregated.ending_patterns[0].type.replace("_", " ") if aggregated.ending_patterns else "N/A"
    top_problem = (
        aggregated.problem_type_distribution[0].type if aggregated.problem_type_distribution else "N/A"
    )
    key_insights = [
        '<div class="key-insights"><h2>Key Insights Summary</h2>',
        *(
            f'<div class="insight-item"><span class="insight-label">{label}:</span> {escape(value)}</div>'
            for label, value in (
                ("Most Common Request", top_request),
                ("Primary Ending Pattern", top_ending),
                ("Top Problem Type", top_problem),
                ("Resolution Rate", f"{resolution_rate(aggregated):.1f}%"),
            )
        ),
        "</div>",
    ]

    failed = []
    if aggregated.failed_sessions:
        failed = [
            '<div class="section"><h2>Sessions Not Analyzed</h2>',
            f"<p>{len(aggregated.failed_sessions)} sessions could not be analyzed:</p><ul>",
            *(f"<li>{escape(session_id)}</li>" for session_id in aggregated.failed_sessions),
            "</ul></div>",
        ]

    return "\n".join([
        "<!DOCTYPE html>",
        '<html lang="en">',
        '<head><meta charset="UTF-8">'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
        f"<title>AI Conversation Analysis Report</title><style>{_STYLE}</style></head>",
        "<body>",
        *header,
        *overview,
        *transcripts,
        *requests,
        *flows,
        *endings,
        *improvements,
        *problems,
        *key_insights,
        *failed,
        '<div class="footer"><p>Generated by Support Chat Analytics</p></div>',
        "</body>",
        "</html>",
    ])
