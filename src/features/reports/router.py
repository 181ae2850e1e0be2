"""Report API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from src.config import get_settings
from src.core.rate_limiter import limiter
from src.features.conversation_analysis import AnalysisError

from .models import (
    AIReportFormat,
    AIReportResponse,
    AnalysisResponse,
    AnalysisRun,
    AnalyzeRequest,
    ReportFormat,
    SessionAnalysisResponse,
)
from .service import (
    AnalyzerUnavailableError,
    ReportService,
    SessionNotFoundError,
    get_report_service,
    hours_label,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])

DAILY_HOURS = 24
WEEKLY_HOURS = 168
MONTHLY_HOURS = 720


def _ai_rate_limit() -> str:
    return get_settings().ai_rate_limit


def _render(run: AnalysisRun, format: ReportFormat) -> AnalysisResponse | Response:
    if format == "html":
        return HTMLResponse(run.html)
    if format == "text":
        return PlainTextResponse(run.text)
    return AnalysisResponse(period=run.period, analytics=run.analytics, insights=run.insights)


@router.post("/analyze", response_model=None)
async def analyze(
    body: AnalyzeRequest,
    format: ReportFormat = "json",
    service: ReportService = Depends(get_report_service),
):
    """
    Run statistics and insights for a custom period.

    Either `hours` or both `start_date` and `end_date`; defaults to the
    last 24 hours.
    """
    run = await service.run_analysis(
        hours=body.hours,
        start_date=body.start_date,
        end_date=body.end_date,
        compare_previous=body.compare_previous,
    )
    return _render(run, format)


@router.get("/daily", response_model=None)
async def daily_report(
    format: ReportFormat = "json",
    service: ReportService = Depends(get_report_service),
):
    """Insights for the last 24 hours."""
    return _render(await service.run_analysis(hours=DAILY_HOURS), format)


@router.get("/weekly", response_model=None)
async def weekly_report(
    format: ReportFormat = "json",
    service: ReportService = Depends(get_report_service),
):
    """Insights for the last 7 days."""
    return _render(await service.run_analysis(hours=WEEKLY_HOURS), format)


@router.get("/monthly", response_model=None)
async def monthly_report(
    format: ReportFormat = "json",
    service: ReportService = Depends(get_report_service),
):
    """Insights for the last 30 days."""
    return _render(await service.run_analysis(hours=MONTHLY_HOURS), format)


@router.get("/ai", response_model=None)
@limiter.limit(_ai_rate_limit)
async def ai_report(
    request: Request,
    hours: int = Query(default=24, ge=1, le=MONTHLY_HOURS),
    format: AIReportFormat = "json",
    service: ReportService = Depends(get_report_service),
):
    """
    Analyze each session of the period with the language model.

    Returns the aggregated analysis together with its HTML report, or the
    HTML report alone with `format=html`.
    """
    try:
        result = await service.run_ai_analysis(hours=hours)
    except AnalyzerUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if result is None:
        if format == "html":
            return HTMLResponse("<p>No sessions found in the specified time range</p>")
        return AIReportResponse(
            period=hours_label(hours),
            sessions_analyzed=0,
            message="No sessions found in the specified time range",
        )

    if format == "html":
        return HTMLResponse(result.report)
    return AIReportResponse(
        period=result.period.label,
        sessions_analyzed=result.sessions_analyzed,
        analysis=result.analysis,
        report=result.report,
    )


@router.post("/ai/session/{session_id}", response_model=SessionAnalysisResponse)
@limiter.limit(_ai_rate_limit)
async def analyze_session(
    request: Request,
    session_id: str,
    service: ReportService = Depends(get_report_service),
):
    """Analyze a single session with the language model."""
    try:
        analysis = await service.analyze_single_session(session_id)
    except AnalyzerUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except AnalysisError as e:
        logger.error(f"Session analysis failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return SessionAnalysisResponse(session_id=session_id, analysis=analysis)
