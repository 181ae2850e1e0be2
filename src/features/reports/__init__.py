"""On-demand reports over chat sessions."""

from .service import ReportService, SessionNotFoundError, get_report_service

__all__ = ["ReportService", "SessionNotFoundError", "get_report_service"]
