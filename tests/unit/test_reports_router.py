"""Report endpoint and service tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from src.config import get_settings
from src.features.analytics import compute_analytics
from src.features.conversation_analysis import AnalysisError, SessionAnalysisOutcome, aggregate_analyses
from src.features.insights import synthesize
from src.features.reports.models import AIReport, AnalysisRun, ReportPeriod
from src.features.reports.service import (
    AnalyzerUnavailableError,
    ReportService,
    SessionNotFoundError,
    get_report_service,
)
from src.main import app

END = datetime(2026, 3, 3, 7, 0, tzinfo=timezone.utc)


def period(hours: int) -> ReportPeriod:
    return ReportPeriod(label=f"last {hours} hours", start_date=END - timedelta(hours=hours), end_date=END)


class FakeReportService:
    def __init__(self, analysis=None, ai_enabled=True, ai_report=None):
        self.analysis = analysis
        self.ai_enabled = ai_enabled
        self.ai_report = ai_report
        self.calls = []

    async def run_analysis(self, hours=None, start_date=None, end_date=None, compare_previous=True):
        self.calls.append(("run_analysis", hours, start_date, end_date, compare_previous))
        analytics = compute_analytics([])
        insights = synthesize(analytics)
        return AnalysisRun(
            period=period(hours or 24),
            analytics=analytics,
            insights=insights,
            html="<html>report</html>",
            text="REPORT\n",
        )

    async def run_ai_analysis(self, hours=None):
        self.calls.append(("run_ai_analysis", hours))
        if not self.ai_enabled:
            raise AnalyzerUnavailableError("AI analysis is not configured")
        return self.ai_report

    async def analyze_single_session(self, session_id):
        if not self.ai_enabled:
            raise AnalyzerUnavailableError("AI analysis is not configured")
        if session_id == "missing":
            raise SessionNotFoundError(session_id)
        if session_id == "broken":
            raise AnalysisError(session_id, "invalid JSON")
        return self.analysis


@pytest.fixture
def fake_service(client):
    service = FakeReportService()
    app.dependency_overrides[get_report_service] = lambda: service
    return service


@pytest.mark.parametrize("path, hours", [("daily", 24), ("weekly", 168), ("monthly", 720)])
def test_period_reports(client, fake_service, path, hours):
    response = client.get(f"/api/reports/{path}")

    assert response.status_code == 200
    data = response.json()
    assert data["period"]["label"] == f"last {hours} hours"
    assert data["analytics"]["total_conversations"] == 0
    assert len(data["insights"]["key_metrics"]) == 6
    assert fake_service.calls[0][:2] == ("run_analysis", hours)


def test_report_formats(client, fake_service):
    html = client.get("/api/reports/daily", params={"format": "html"})
    text = client.get("/api/reports/daily", params={"format": "text"})

    assert html.headers["content-type"].startswith("text/html")
    assert html.text == "<html>report</html>"
    assert text.headers["content-type"].startswith("text/plain")
    assert text.text == "REPORT\n"


def test_unknown_format_is_rejected(client, fake_service):
    assert client.get("/api/reports/daily", params={"format": "pdf"}).status_code == 422


def test_custom_analysis(client, fake_service):
    body = {"start_date": "2026-03-01T00:00:00Z", "end_date": "2026-03-02T00:00:00Z", "compare_previous": False}
    response = client.post("/api/reports/analyze", json=body)

    assert response.status_code == 200
    _, hours, start, end, compare = fake_service.calls[0]
    assert hours is None
    assert start == datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 3, 2, tzinfo=timezone.utc)
    assert compare is False


def test_custom_analysis_rejects_reversed_range(client, fake_service):
    body = {"start_date": "2026-03-02T00:00:00Z", "end_date": "2026-03-01T00:00:00Z"}
    assert client.post("/api/reports/analyze", json=body).status_code == 422


def test_ai_report_without_sessions(client, fake_service):
    response = client.get("/api/reports/ai", params={"hours": 48})

    assert response.status_code == 200
    data = response.json()
    assert data["sessions_analyzed"] == 0
    assert data["period"] == "last 48 hours"
    assert data["analysis"] is None
    assert fake_service.calls == [("run_ai_analysis", 48)]


def test_ai_report(client, make_analysis):
    aggregated = aggregate_analyses([make_analysis("s1")], generated_at=END)
    report = AIReport(period=period(24), sessions_analyzed=1, analysis=aggregated, report="<html>ai</html>")
    service = FakeReportService(ai_report=report)
    app.dependency_overrides[get_report_service] = lambda: service

    data = client.get("/api/reports/ai").json()
    assert data["sessions_analyzed"] == 1
    assert data["analysis"]["common_first_requests"][0]["pattern"] == "password reset"
    assert data["analysis"]["conversation_transcripts"][0]["analysis"]["first_user_request"]["needs_clarification"] is False
    assert data["report"] == "<html>ai</html>"

    assert client.get("/api/reports/ai", params={"format": "html"}).text == "<html>ai</html>"


def test_ai_unavailable(client):
    app.dependency_overrides[get_report_service] = lambda: FakeReportService(ai_enabled=False)

    assert client.get("/api/reports/ai").status_code == 503
    assert client.post("/api/reports/ai/session/s1").status_code == 503


def test_single_session_analysis(client, make_analysis):
    service = FakeReportService(analysis=make_analysis("s1"))
    app.dependency_overrides[get_report_service] = lambda: service

    response = client.post("/api/reports/ai/session/s1")
    assert response.status_code == 200
    assert response.json()["analysis"]["ending_analysis"]["resolution"] == "resolved"

    assert client.post("/api/reports/ai/session/missing").status_code == 404
    assert client.post("/api/reports/ai/session/broken").status_code == 502


def test_ai_endpoint_is_rate_limited(client, fake_service):
    statuses = [client.get("/api/reports/ai").status_code for _ in range(6)]
    assert statuses[:5] == [200] * 5
    assert statuses[5] == 429


class StubSessions:
    def __init__(self, logs=None, sessions=None):
        self.logs = logs or []
        self.sessions = sessions or []
        self.windows = []

    async def fetch_logs(self, start_date=None, end_date=None):
        self.windows.append((start_date, end_date))
        return self.logs

    async def fetch_enriched_sessions(self, start_date=None, end_date=None):
        return self.sessions

    async def fetch_session(self, session_id):
        return None


def test_run_analysis_compares_previous_window():
    sessions = StubSessions()
    service = ReportService(sessions)
    run = asyncio.run(service.run_analysis(hours=24, end_date=END))

    assert run.period.label == "last 24 hours"
    assert sessions.windows == [
        (END - timedelta(hours=24), END),
        (END - timedelta(hours=48), END - timedelta(hours=24)),
    ]
    assert run.insights.key_metrics[0].trend == "stable"
    assert "<!DOCTYPE html>" in run.html


def test_run_ai_analysis_requires_analyzer():
    with pytest.raises(AnalyzerUnavailableError):
        asyncio.run(ReportService(StubSessions()).run_ai_analysis())


def test_run_ai_analysis_lists_failed_sessions(make_session, make_analysis):
    class StubAnalyzer:
        async def analyze_many(self, sessions):
            return [
                SessionAnalysisOutcome(session_id="s1", analysis=make_analysis("s1")),
                SessionAnalysisOutcome(session_id="s2", error="timeout"),
            ]

    sessions = StubSessions(sessions=[make_session("s1"), make_session("s2")])
    result = asyncio.run(ReportService(sessions, StubAnalyzer()).run_ai_analysis(hours=12))

    assert result.sessions_analyzed == 1
    assert result.period.label == "last 12 hours"
    assert result.analysis.failed_sessions == ["s2"]
    assert "Report Period: last 12 hours" in result.report


def test_run_ai_analysis_without_sessions():
    class UnusedAnalyzer:
        async def analyze_many(self, sessions):
            raise AssertionError("no sessions to analyze")

    assert asyncio.run(ReportService(StubSessions(), UnusedAnalyzer()).run_ai_analysis()) is None


def test_explicit_dates_apply_only_as_pair():
    service = ReportService(StubSessions(), default_hours=6)
    start = END - timedelta(days=2)

    assert service.resolve_period(start_date=start, end_date=END).start_date == start
    assert service.resolve_period(hours=3, start_date=start, end_date=END).start_date == END - timedelta(hours=3)
    assert service.resolve_period(end_date=END).label == "last 6 hours"


def test_custom_analysis_rejects_mixed_timezones(client, fake_service):
    body = {"start_date": "2026-03-01T00:00:00", "end_date": "2026-03-02T00:00:00Z"}
    assert client.post("/api/reports/analyze", json=body).status_code == 422


def test_report_services_share_one_completion_client(monkeypatch):
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "analytics-test")
    get_settings.cache_clear()
    try:
        first, second = get_report_service(), get_report_service()
        assert first.analyzer is not None
        assert first.analyzer.completion is second.analyzer.completion
    finally:
        get_settings.cache_clear()
