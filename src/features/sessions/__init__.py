"""Chat session retrieval and flattening."""

from .models import ChatMessage, ChatSession, EnrichedSession, InteractionLog, LogMetadata
from .service import SessionService, categorize_query, enrich_session, flatten_session

__all__ = [
    "ChatMessage",
    "ChatSession",
    "EnrichedSession",
    "InteractionLog",
    "LogMetadata",
    "SessionService",
    "categorize_query",
    "enrich_session",
    "flatten_session",
]
