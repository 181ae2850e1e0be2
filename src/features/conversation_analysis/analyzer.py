"""Per-session conversation analysis backed by a JSON completion service."""

import asyncio
import logging
from typing import Any, Protocol

from pydantic import ValidationError

from src.core.gemini import CompletionError
from src.features.sessions.models import ChatMessage, EnrichedSession

from .models import (
    ConversationAnalysis,
    EndingAnalysis,
    FlowAnalysis,
    ImprovementSuggestion,
    ProblemType,
    RequestAnalysis,
    SessionAnalysisOutcome,
)

logger = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.3
SUGGESTION_TEMPERATURE = 0.4


class CompletionClient(Protocol):
    """Anything that turns a prompt into a parsed JSON object."""

    async def complete_json(self, prompt: str, temperature: float = 0.3) -> dict[str, Any]:
        ...


class AnalysisError(Exception):
    """Analysis of one session failed; no partial result exists."""

    def __init__(self, session_id: str, reason: str):
        super().__init__(f"Analysis of session {session_id} failed: {reason}")
        self.session_id = session_id
        self.reason = reason


def format_messages(messages: list[ChatMessage]) -> str:
    return "\n".join(f"{'USER' if m.is_user else 'BOT'}: {m.content}" for m in messages)


def _list_field(payload: dict[str, Any], key: str) -> list[Any]:
    value = payload.get(key)
    if not isinstance(value, list):
        raise CompletionError(f'Expected "{key}" to be a list, got {type(value).__name__}')
    return value


class ConversationAnalyzer:
    """Runs the five qualitative judgments for chat sessions."""

    def __init__(
        self,
        completion: CompletionClient,
        batch_size: int = 3,
        batch_delay: float = 1.0,
    ):
        self.completion = completion
        self.batch_size = max(batch_size, 1)
        self.batch_delay = batch_delay

    async def analyze(self, session: EnrichedSession) -> ConversationAnalysis:
        """
        Analyze one session with five concurrent completion requests.

        Args:
            session: Enriched session with its messages

        Returns:
            Complete analysis of the session

        Raises:
            AnalysisError: If any of the five requests fails or returns an unexpected shape
        """
        transcript = format_messages(session.messages)
        try:
            async with asyncio.TaskGroup() as group:
                first_request = group.create_task(self.analyze_first_request(session))
                flow = group.create_task(self.analyze_flow(session, transcript))
                ending = group.create_task(self.analyze_ending(session, transcript))
                suggestions = group.create_task(self.suggest_improvements(transcript))
                problems = group.create_task(self.identify_problem_types(transcript))
        except ExceptionGroup as group_error:
            # The group has already cancelled the remaining requests
            failure = next(
                (e for e in group_error.exceptions if isinstance(e, (CompletionError, ValidationError))),
                None,
            )
            if failure is None:
                raise
            raise AnalysisError(session.id, str(failure)) from failure

        return ConversationAnalysis(
            session_id=session.id,
            first_user_request=first_request.result(),
            conversation_flow=flow.result(),
            ending_analysis=ending.result(),
            improvement_suggestions=suggestions.result(),
            problem_types=problems.result(),
        )

    async def analyze_first_request(self, session: EnrichedSession) -> RequestAnalysis:
        first_message = session.first_user_query or next(
            (m.content for m in session.messages if m.is_user), ""
        )
        prompt = f"""Analyze this first user request from a support chat:
"{first_message}"

Provide analysis in JSON format:
{{
  "intent": "main purpose of the request",
  "category": "technical/account/billing/wellness/information/help",
  "urgency": "low/medium/high",
  "sentiment": "positive/neutral/negative",
  "clarity": 0-100,
  "needsClarification": true/false
}}"""
        payload = await self.completion.complete_json(prompt, ANALYSIS_TEMPERATURE)
        return RequestAnalysis.model_validate({**payload, "originalMessage": first_message})

    async def analyze_flow(self, session: EnrichedSession, transcript: str) -> FlowAnalysis:
        prompt = f"""Analyze this support conversation flow:

{transcript}

Provide analysis in JSON format:
{{
  "topicChanges": number of topic shifts,
  "userSatisfactionTrend": "improving/declining/stable",
  "keyTopics": ["topic1", "topic2", ...],
  "conversationQuality": 0-100,
  "misunderstandings": ["description of any misunderstandings"]
}}"""
        payload = await self.completion.complete_json(prompt, ANALYSIS_TEMPERATURE)
        return FlowAnalysis.model_validate({
            **payload,
            "totalMessages": len(session.messages),
            "userMessages": session.user_message_count,
            "botMessages": session.bot_message_count,
        })

    async def analyze_ending(self, session: EnrichedSession, transcript: str) -> EndingAnalysis:
        last_messages = format_messages(session.messages[-3:])
        last_user_message = next((m.content for m in reversed(session.messages) if m.is_user), None)
        prompt = f"""Analyze how this support conversation ended:

Full conversation:
{transcript}

Last 3 messages:
{last_messages}

Provide analysis in JSON format:
{{
  "endedBy": "user/bot/timeout",
  "resolution": "resolved/unresolved/abandoned",
  "finalSentiment": "satisfied/neutral/frustrated",
  "reasonForEnding": "brief explanation",
  "followUpNeeded": true/false
}}"""
        payload = await self.completion.complete_json(prompt, ANALYSIS_TEMPERATURE)
        return EndingAnalysis.model_validate({**payload, "lastUserMessage": last_user_message})

    async def suggest_improvements(self, transcript: str) -> list[ImprovementSuggestion]:
        prompt = f"""Analyze this support conversation and suggest improvements for the AI assistant:

{transcript}

Identify what information or capabilities the AI assistant needs to handle similar conversations better.
Provide 3-5 specific suggestions in JSON format:
{{
  "suggestions": [
    {{
      "category": "knowledge/response/flow/clarification",
      "issue": "specific problem identified",
      "suggestion": "specific improvement recommendation",
      "priority": "high/medium/low",
      "examples": ["example phrases or scenarios"]
    }}
  ]
}}"""
        payload = await self.completion.complete_json(prompt, SUGGESTION_TEMPERATURE)
        return [
            ImprovementSuggestion.model_validate(item)
            for item in _list_field(payload, "suggestions")
        ]

    async def identify_problem_types(self, transcript: str) -> list[ProblemType]:
        prompt = f"""Identify the types of problems discussed in this support conversation:

{transcript}

Categorize and list all problems mentioned. Provide analysis in JSON format:
{{
  "problems": [
    {{
      "type": "category of problem",
      "description": "brief description",
      "severity": "low/medium/high",
      "examples": ["specific mentions from conversation"]
    }}
  ]
}}"""
        payload = await self.completion.complete_json(prompt, ANALYSIS_TEMPERATURE)
        problems = [ProblemType.model_validate(item) for item in _list_field(payload, "problems")]
        # Counted once per session; the aggregator sums across sessions
        return [problem.model_copy(update={"frequency": 1}) for problem in problems]

    async def _analyze_outcome(self, session: EnrichedSession) -> SessionAnalysisOutcome:
        try:
            analysis = await self.analyze(session)
        except Exception as e:
            logger.warning(f"Session {session.id} analysis failed: {e}")
            return SessionAnalysisOutcome(session_id=session.id, error=str(e))
        return SessionAnalysisOutcome(session_id=session.id, analysis=analysis)

    async def analyze_many(self, sessions: list[EnrichedSession]) -> list[SessionAnalysisOutcome]:
        """
        Analyze sessions in fixed-size batches with a pause between batches.

        A failing session is recorded as a failed outcome and does not stop
        the remaining sessions.

        Returns:
            One outcome per session, in input order
        """
        outcomes: list[SessionAnalysisOutcome] = []
        for start in range(0, len(sessions), self.batch_size):
            batch = sessions[start:start + self.batch_size]
            logger.info(
                f"Analyzing batch {start // self.batch_size + 1}, sessions {start} to {start + len(batch)}"
            )
            outcomes.extend(await asyncio.gather(*(self._analyze_outcome(s) for s in batch)))

            if start + self.batch_size < len(sessions):
                await asyncio.sleep(self.batch_delay)

        failed = sum(1 for outcome in outcomes if not outcome.succeeded)
        logger.info(f"Analyzed {len(outcomes) - failed}/{len(outcomes)} sessions")
        return outcomes
