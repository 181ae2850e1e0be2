"""Report service: runs the statistics and AI analysis pipelines for a period."""

import logging
from datetime import datetime, timedelta, timezone

from src.config import get_settings
from src.core.gemini import get_gemini_client
from src.features.analytics import compute_analytics
from src.features.conversation_analysis import (
    ConversationAnalysis,
    ConversationAnalyzer,
    aggregate_analyses,
    format_analysis_report,
)
from src.features.insights import format_insights_html, format_insights_text, synthesize
from src.features.sessions.service import SessionService, get_session_service

from .models import AIReport, AnalysisRun, ReportPeriod

logger = logging.getLogger(__name__)


class SessionNotFoundError(Exception):
    """Requested session does not exist."""

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class AnalyzerUnavailableError(Exception):
    """AI analysis is not configured."""


def hours_label(hours: int) -> str:
    return f"last {hours} hours"


class ReportService:
    """Orchestrates fetching, statistics, insights and AI analysis."""

    def __init__(
        self,
        sessions: SessionService,
        analyzer: ConversationAnalyzer | None = None,
        default_hours: int = 24,
    ):
        self.sessions = sessions
        self.analyzer = analyzer
        self.default_hours = default_hours

    def resolve_period(
        self,
        hours: int | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> ReportPeriod:
        """
        Work out the reporting window.

        `hours` wins over explicit dates, which apply only as a pair. Without
        either, the window is the last `default_hours` hours ending now.
        """
        if start_date and end_date and not hours:
            return ReportPeriod(
                label=f"{start_date:%Y-%m-%d} to {end_date:%Y-%m-%d}",
                start_date=start_date,
                end_date=end_date,
            )

        hours = hours or self.default_hours
        end = end_date or datetime.now(timezone.utc)
        return ReportPeriod(label=hours_label(hours), start_date=end - timedelta(hours=hours), end_date=end)

    async def run_analysis(
        self,
        hours: int | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        compare_previous: bool = True,
    ) -> AnalysisRun:
        """
        Compute analytics and insights for a period.

        Args:
            hours: Length of the window ending now
            start_date: Explicit window start (used together with end_date)
            end_date: Explicit window end
            compare_previous: Also analyze the preceding window of equal length
                so key metrics carry change and trend

        Returns:
            Analytics, insights and their HTML and text renderings
        """
        period = self.resolve_period(hours, start_date, end_date)
        logger.info(f"Starting analysis for {period.label}")

        logs = await self.sessions.fetch_logs(period.start_date, period.end_date)
        logger.info(f"Fetched {len(logs)} logs")
        analytics = compute_analytics(logs)

        previous = None
        if compare_previous:
            length = period.end_date - period.start_date
            previous_logs = await self.sessions.fetch_logs(period.start_date - length, period.start_date)
            previous = compute_analytics(previous_logs)

        insights = synthesize(analytics, previous)
        generated_at = datetime.now(timezone.utc)
        return AnalysisRun(
            period=period,
            analytics=analytics,
            insights=insights,
            html=format_insights_html(insights, generated_at),
            text=format_insights_text(insights, generated_at),
        )

    def _require_analyzer(self) -> ConversationAnalyzer:
        if self.analyzer is None:
            raise AnalyzerUnavailableError("AI analysis is not configured")
        return self.analyzer

    async def run_ai_analysis(self, hours: int | None = None) -> AIReport | None:
        """
        Analyze every session of the last `hours` hours with the language model.

        Sessions whose analysis fails are listed in the report instead of
        aborting the run.

        Returns:
            Aggregated report, or None when the period has no sessions
        """
        analyzer = self._require_analyzer()
        period = self.resolve_period(hours)

        sessions = await self.sessions.fetch_enriched_sessions(period.start_date, period.end_date)
        if not sessions:
            logger.info(f"No sessions found for {period.label}")
            return None

        logger.info(f"Analyzing {len(sessions)} sessions")
        outcomes = await analyzer.analyze_many(sessions)
        analyses = [outcome.analysis for outcome in outcomes if outcome.analysis is not None]
        failed = [outcome.session_id for outcome in outcomes if not outcome.succeeded]

        aggregated = aggregate_analyses(analyses, sessions, failed_sessions=failed)
        report = format_analysis_report(aggregated, period.label, period.start_date, period.end_date)
        return AIReport(
            period=period,
            sessions_analyzed=len(analyses),
            analysis=aggregated,
            report=report,
        )

    async def analyze_single_session(self, session_id: str) -> ConversationAnalysis:
        """
        Analyze one session by id.

        Raises:
            AnalyzerUnavailableError: If AI analysis is not configured
            SessionNotFoundError: If the session does not exist
            AnalysisError: If the analysis fails
        """
        analyzer = self._require_analyzer()
        session = await self.sessions.fetch_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return await analyzer.analyze(session)


def get_report_service() -> ReportService:
    """Get report service instance."""
    settings = get_settings()
    analyzer = None
    if settings.google_cloud_project:
        analyzer = ConversationAnalyzer(
            get_gemini_client(),
            batch_size=settings.analysis_batch_size,
            batch_delay=settings.analysis_batch_delay_seconds,
        )

    return ReportService(
        sessions=get_session_service(),
        analyzer=analyzer,
        default_hours=settings.default_report_hours,
    )
