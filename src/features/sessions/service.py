"""Session service: fetch sessions, enrich them and flatten them into logs."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from src.core.firestore import FirestoreClient, get_firestore_client

from .models import ChatMessage, ChatSession, EnrichedSession, InteractionLog, LogMetadata

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Checked in order, first match wins
QUERY_CATEGORIES: list[tuple[str, tuple[str, ...]]] = [
    ("help", ("help", "support")),
    ("technical", ("error", "problem", "issue")),
    ("information", ("how", "what", "where")),
    ("account", ("account", "login", "password")),
    ("billing", ("payment", "billing", "subscription")),
    ("wellness", ("meditation", "relax", "stress")),
]


def categorize_query(query: str) -> str:
    """Assign a coarse category to a user query by keyword."""
    lower_query = query.lower()
    for category, keywords in QUERY_CATEGORIES:
        if any(keyword in lower_query for keyword in keywords):
            return category
    return "general"


def enrich_session(session: ChatSession, messages: list[ChatMessage]) -> EnrichedSession:
    """Attach messages to a session and derive its counters."""
    user_messages = [m for m in messages if m.is_user]
    total_characters = sum(m.message_length for m in messages)

    return EnrichedSession(
        **session.model_dump(),
        messages=list(messages),
        user_message_count=len(user_messages),
        bot_message_count=len(messages) - len(user_messages),
        total_characters=total_characters,
        has_actions=any(m.has_actions for m in messages),
        unique_user_queries=len(set(session.user_queries)),
        avg_message_length=total_characters / len(messages) if messages else 0.0,
        # Stored duration is in seconds
        session_duration_minutes=round(session.session_duration / 60, 1),
    )


def _response_time_ms(user_msg: ChatMessage | None, bot_msg: ChatMessage | None) -> float:
    if not user_msg or not bot_msg or not user_msg.timestamp or not bot_msg.timestamp:
        return 0
    try:
        delta = (bot_msg.timestamp - user_msg.timestamp).total_seconds() * 1000
    except TypeError:
        # naive vs aware timestamps cannot be compared
        return 0
    return delta if delta >= 0 else 0


def flatten_session(session: EnrichedSession) -> list[InteractionLog]:
    """
    Turn a session into interaction logs, one per user/bot message pair.

    The i-th user message is paired with the i-th bot message. Unpaired
    messages still produce a log with the missing side left empty.
    """
    user_messages = [m for m in session.messages if m.is_user]
    bot_messages = [m for m in session.messages if not m.is_user]

    logs = []
    for i in range(max(len(user_messages), len(bot_messages))):
        user_msg = user_messages[i] if i < len(user_messages) else None
        bot_msg = bot_messages[i] if i < len(bot_messages) else None
        user_text = user_msg.content if user_msg else ""

        logs.append(
            InteractionLog(
                id=f"{session.id}-{i}",
                conversation_id=session.id,
                user_id=session.user_id or session.id,
                user_message=user_text,
                bot_response=bot_msg.content if bot_msg else "",
                timestamp=(user_msg.timestamp if user_msg else None) or session.created_at,
                session_duration=session.session_duration,
                resolved=session.message_count > 2,
                category=categorize_query(user_text),
                error=False,
                platform=session.platform,
                metadata=LogMetadata(
                    response_time=_response_time_ms(user_msg, bot_msg),
                    message_count=session.message_count,
                    has_actions=session.has_actions,
                    app_version=session.app_version,
                    build_number=session.build_number,
                ),
            )
        )
    return logs


class SessionService:
    """Service for reading chat sessions from the document store."""

    def __init__(self, firestore: FirestoreClient):
        self.firestore = firestore

    async def fetch_sessions(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[ChatSession]:
        """Fetch bare session documents."""
        docs = await self.firestore.list_sessions(start_date, end_date)
        return [_parse_document(ChatSession, doc) for doc in docs]

    async def _enrich(self, session: ChatSession) -> EnrichedSession:
        raw_messages = await self.firestore.list_messages(session.id)
        messages = [_parse_document(ChatMessage, _message_defaults(raw, session)) for raw in raw_messages]
        return enrich_session(session, messages)

    async def fetch_enriched_sessions(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[EnrichedSession]:
        """
        Fetch sessions together with their messages.

        Args:
            start_date: Lower bound on session creation time
            end_date: Upper bound on session creation time

        Returns:
            Enriched sessions, newest first
        """
        sessions = await self.fetch_sessions(start_date, end_date)
        enriched = [await self._enrich(session) for session in sessions]
        logger.info(f"Enriched {len(enriched)} sessions")
        return enriched

    async def fetch_sessions_by_time_range(
        self,
        hours: int = 24,
        end_date: datetime | None = None,
    ) -> list[EnrichedSession]:
        """Fetch enriched sessions created in the last `hours` hours."""
        end_date = end_date or datetime.now(timezone.utc)
        start_date = end_date - timedelta(hours=hours)
        return await self.fetch_enriched_sessions(start_date, end_date)

    async def fetch_session(self, session_id: str) -> EnrichedSession | None:
        """Fetch one enriched session, or None if it does not exist."""
        doc = await self.firestore.get_session(session_id)
        if doc is None:
            return None
        return await self._enrich(_parse_document(ChatSession, doc))

    async def fetch_logs(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[InteractionLog]:
        """Fetch sessions in a period and flatten them into interaction logs."""
        sessions = await self.fetch_enriched_sessions(start_date, end_date)
        return [log for session in sessions for log in flatten_session(session)]


def _parse_document(model: type[ModelT], doc: dict[str, Any]) -> ModelT:
    """Validate a stored document, dropping fields that fail so their defaults apply."""
    try:
        return model.model_validate(doc)
    except ValidationError as e:
        invalid = {error["loc"][0] for error in e.errors() if error["loc"]}
        logger.warning(f"Ignoring invalid fields {sorted(map(str, invalid))} in {model.__name__} {doc.get('id', '')}")
        return model.model_validate({key: value for key, value in doc.items() if key not in invalid})


def _message_defaults(raw: dict[str, Any], session: ChatSession) -> dict[str, Any]:
    data = dict(raw)
    data.setdefault("platform", session.platform)
    return data


def get_session_service() -> SessionService:
    """Get session service instance."""
    return SessionService(firestore=get_firestore_client())
