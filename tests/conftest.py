"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from src.core.rate_limiter import limiter
from src.features.conversation_analysis.models import (
    ConversationAnalysis,
    EndingAnalysis,
    FlowAnalysis,
    ImprovementSuggestion,
    ProblemType,
    RequestAnalysis,
)
from src.features.sessions.models import ChatMessage, ChatSession, InteractionLog, LogMetadata
from src.features.sessions.service import enrich_session
from src.main import app

BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)  # a Monday


@pytest.fixture
def client():
    limiter.reset()
    app.dependency_overrides.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_log():
    def factory(**overrides) -> InteractionLog:
        metadata = overrides.pop("metadata", {})
        data = {
            "id": "log-1",
            "conversation_id": "session-1",
            "user_id": "user-1",
            "user_message": "hello",
            "bot_response": "Hi, how can I help?",
            "timestamp": BASE_TIME,
            "platform": "ios",
            "category": "general",
        }
        data.update(overrides)
        return InteractionLog(**data, metadata=LogMetadata(**metadata))

    return factory


@pytest.fixture
def make_session():
    def factory(session_id: str = "session-1", turns: list[tuple[str, str]] | None = None, **overrides):
        turns = turns if turns is not None else [("I forgot my password", "You can reset it in settings.")]
        messages = []
        for i, (user_text, bot_text) in enumerate(turns):
            sent = BASE_TIME + timedelta(minutes=2 * i)
            messages.append(ChatMessage(timestamp=sent, content=user_text, is_user=True, language="en"))
            messages.append(ChatMessage(
                timestamp=sent + timedelta(seconds=3), content=bot_text, is_user=False, language="en"
            ))
        data = {
            "id": session_id,
            "created_at": BASE_TIME,
            "last_message_at": BASE_TIME + timedelta(minutes=2 * len(turns)),
            "platform": "android",
            "first_user_query": turns[0][0] if turns else "",
            "message_count": len(messages),
            "user_queries": [user_text for user_text, _ in turns],
            "session_duration": 240,
            "app_version": "2.1.0",
        }
        data.update(overrides)
        return enrich_session(ChatSession(**data), messages)

    return factory


@pytest.fixture
def make_analysis():
    def factory(
        session_id: str = "session-1",
        intent: str = "password reset",
        clarity: int = 80,
        resolution: str = "resolved",
        ended_by: str = "user",
        quality: int = 70,
        trend: str = "stable",
        topic_changes: int = 0,
        suggestions: list[dict] | None = None,
        problems: list[dict] | None = None,
    ) -> ConversationAnalysis:
        return ConversationAnalysis(
            session_id=session_id,
            first_user_request=RequestAnalysis(
                original_message="I forgot my password",
                intent=intent,
                category="account",
                urgency="medium",
                sentiment="neutral",
                clarity=clarity,
                needs_clarification=False,
            ),
            conversation_flow=FlowAnalysis(
                topic_changes=topic_changes,
                user_satisfaction_trend=trend,
                conversation_quality=quality,
                misunderstandings=[],
            ),
            ending_analysis=EndingAnalysis(
                ended_by=ended_by,
                resolution=resolution,
                final_sentiment="satisfied",
                reason_for_ending="question answered",
                follow_up_needed=False,
            ),
            improvement_suggestions=[ImprovementSuggestion(**s) for s in suggestions or []],
            problem_types=[ProblemType(**p) for p in problems or []],
        )

    return factory
