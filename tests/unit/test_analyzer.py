"""Per-session conversation analyzer tests."""

import asyncio

import pytest

from src.core.gemini import CompletionError, parse_json_object
from src.features.conversation_analysis import AnalysisError, ConversationAnalyzer
from src.features.conversation_analysis.analyzer import format_messages

RESPONSES = {
    "Analyze this first user request": {
        "intent": "password reset",
        "category": "account",
        "urgency": "High",
        "sentiment": "neutral",
        "clarity": 85,
        "needsClarification": False,
    },
    "Analyze this support conversation flow": {
        "topicChanges": 1,
        "userSatisfactionTrend": "improving",
        "keyTopics": ["password"],
        "conversationQuality": 75,
        "misunderstandings": [],
    },
    "Analyze how this support conversation ended": {
        "endedBy": "user",
        "resolution": "resolved",
        "finalSentiment": "satisfied",
        "reasonForEnding": "issue solved",
        "followUpNeeded": False,
    },
    "Analyze this support conversation and suggest": {
        "suggestions": [{
            "category": "knowledge",
            "issue": "No reset link",
            "suggestion": "Include the reset link",
            "priority": "medium",
            "examples": ["where is the link"],
        }],
    },
    "Identify the types of problems": {
        "problems": [{"type": "account access", "description": "locked out", "severity": "high"}],
    },
}


class FakeCompletion:
    def __init__(self, overrides=None, fail_for=()):
        self.responses = {**RESPONSES, **(overrides or {})}
        self.fail_for = fail_for
        self.calls = []

    async def complete_json(self, prompt, temperature=0.3):
        self.calls.append((prompt, temperature))
        if any(marker in prompt for marker in self.fail_for):
            raise CompletionError("service unavailable")
        for marker, payload in self.responses.items():
            if prompt.startswith(marker):
                return payload
        raise AssertionError(f"Unexpected prompt: {prompt[:60]}")


def test_analyze_combines_five_judgments(make_session):
    completion = FakeCompletion()
    session = make_session(turns=[("I forgot my password", "Use the reset link"), ("Thanks", "Anytime")])

    analysis = asyncio.run(ConversationAnalyzer(completion).analyze(session))

    assert len(completion.calls) == 5
    assert analysis.session_id == "session-1"
    assert analysis.first_user_request.original_message == "I forgot my password"
    assert analysis.first_user_request.urgency == "high"
    assert analysis.conversation_flow.total_messages == 4
    assert analysis.conversation_flow.user_messages == 2
    assert analysis.ending_analysis.last_user_message == "Thanks"
    assert analysis.improvement_suggestions[0].priority == "medium"
    assert analysis.problem_types[0].frequency == 1


def test_improvements_use_higher_temperature(make_session):
    completion = FakeCompletion()
    asyncio.run(ConversationAnalyzer(completion).analyze(make_session()))

    def temperature_for(marker):
        return next(t for prompt, t in completion.calls if prompt.startswith(marker))

    assert temperature_for("Analyze this support conversation and suggest") == 0.4
    assert temperature_for("Analyze this first user request") == 0.3
    assert temperature_for("Identify the types of problems") == 0.3


def test_prompt_contains_transcript(make_session):
    completion = FakeCompletion()
    session = make_session(turns=[("Where is my invoice?", "In billing")])
    asyncio.run(ConversationAnalyzer(completion).analyze(session))

    flow_prompt = next(p for p, _ in completion.calls if p.startswith("Analyze this support conversation flow"))
    assert "USER: Where is my invoice?\nBOT: In billing" in flow_prompt


def test_completion_failure_fails_whole_session(make_session):
    completion = FakeCompletion(fail_for=("Identify the types of problems",))

    with pytest.raises(AnalysisError) as exc_info:
        asyncio.run(ConversationAnalyzer(completion).analyze(make_session()))
    assert exc_info.value.session_id == "session-1"


def test_malformed_reply_fails_session(make_session):
    completion = FakeCompletion(overrides={
        "Analyze this support conversation flow": {"topicChanges": 0, "userSatisfactionTrend": "great"},
    })
    with pytest.raises(AnalysisError):
        asyncio.run(ConversationAnalyzer(completion).analyze(make_session()))


def test_suggestions_must_be_a_list(make_session):
    completion = FakeCompletion(overrides={"Analyze this support conversation and suggest": {"suggestions": "none"}})
    with pytest.raises(AnalysisError):
        asyncio.run(ConversationAnalyzer(completion).analyze(make_session()))


def test_analyze_many_tags_failures(make_session, monkeypatch):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)

    class PartlyFailing(FakeCompletion):
        async def complete_json(self, prompt, temperature=0.3):
            if "broken session" in prompt:
                raise CompletionError("timeout")
            return await super().complete_json(prompt, temperature)

    sessions = [
        make_session("s1"),
        make_session("s2", turns=[("broken session", "...")]),
        make_session("s3"),
        make_session("s4"),
    ]
    analyzer = ConversationAnalyzer(PartlyFailing(), batch_size=3, batch_delay=0.5)
    outcomes = asyncio.run(analyzer.analyze_many(sessions))

    assert [o.session_id for o in outcomes] == ["s1", "s2", "s3", "s4"]
    assert [o.succeeded for o in outcomes] == [True, False, True, True]
    assert "timeout" in outcomes[1].error
    assert sleeps == [0.5]


def test_analyze_many_empty():
    assert asyncio.run(ConversationAnalyzer(FakeCompletion()).analyze_many([])) == []


def test_format_messages(make_session):
    session = make_session(turns=[("Hi", "Hello")])
    assert format_messages(session.messages) == "USER: Hi\nBOT: Hello"


def test_parse_json_object():
    assert parse_json_object('{"a": 1}') == {"a": 1}
    for text in ("", "not json", "[1, 2]"):
        with pytest.raises(CompletionError):
            parse_json_object(text)


def test_failure_cancels_pending_requests(make_session):
    class StallingCompletion(FakeCompletion):
        def __init__(self):
            super().__init__()
            self.finished = []
            self.cancelled = []

        async def complete_json(self, prompt, temperature=0.3):
            if prompt.startswith("Identify the types of problems"):
                raise CompletionError("quota exceeded")
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled.append(prompt)
                raise
            self.finished.append(prompt)
            return await super().complete_json(prompt, temperature)

    completion = StallingCompletion()

    async def run():
        with pytest.raises(AnalysisError) as exc_info:
            await ConversationAnalyzer(completion).analyze(make_session())
        await asyncio.sleep(0.05)
        return exc_info.value

    error = asyncio.run(run())

    assert "quota exceeded" in str(error)
    assert len(completion.cancelled) == 4
    assert completion.finished == []
