"""Chat session models and the flattened interaction log view."""

import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from src.utils.language import resolve_language


def _drop_nulls(data: Any) -> Any:
    """Let field defaults apply to keys stored as null."""
    if not isinstance(data, dict):
        return data
    return {key: value for key, value in data.items() if value is not None}


def _number_or_zero(value: Any) -> float:
    """Read a stored number, treating blanks and junk as absent."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _strings_only(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


StoredCount = Annotated[int, BeforeValidator(lambda value: int(_number_or_zero(value)))]
StoredNumber = Annotated[float, BeforeValidator(_number_or_zero)]
StoredStrings = Annotated[list[str], BeforeValidator(_strings_only)]


class ChatMessage(BaseModel):
    """Single message stored under a chat session."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    timestamp: datetime | None = None
    content: str = ""
    is_user: bool = False
    action: str | None = None
    message_length: int = 0
    has_links: bool = False
    has_actions: bool = False
    platform: str = ""
    language: str = "en"

    @model_validator(mode="before")
    @classmethod
    def fill_derived_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = _drop_nulls(data)
        content = data.get("content")
        if not isinstance(content, str):
            content = ""
        data["content"] = content
        if not data.get("message_length"):
            data["message_length"] = len(content)
        data["language"] = resolve_language(data.get("language"), content)
        return data


class ChatSession(BaseModel):
    """Chat session document as stored in Firestore."""

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    id: str
    created_at: datetime | None = None
    last_message_at: datetime | None = None
    platform: str = ""
    first_user_query: str = ""
    message_count: StoredCount = 0
    last_message: str = ""
    user_queries: StoredStrings = Field(default_factory=list)
    session_duration: StoredNumber = 0
    start_time: str = ""
    app_version: str = ""
    build_number: str = ""
    user_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def ignore_null_fields(cls, data: Any) -> Any:
        return _drop_nulls(data)


class EnrichedSession(ChatSession):
    """Session with its messages and counters derived once at fetch time."""

    messages: list[ChatMessage] = Field(default_factory=list)
    user_message_count: int = 0
    bot_message_count: int = 0
    total_characters: int = 0
    has_actions: bool = False
    unique_user_queries: int = 0
    avg_message_length: float = 0.0
    session_duration_minutes: float = 0


class LogMetadata(BaseModel):
    """Typed metadata carried by an interaction log. Zero values mean absent."""

    model_config = ConfigDict(frozen=True)

    response_time: float = 0
    message_count: int = 0
    has_actions: bool = False
    app_version: str = ""
    build_number: str = ""


class InteractionLog(BaseModel):
    """One user/bot exchange, the unit the statistics engine works on."""

    model_config = ConfigDict(frozen=True)

    id: str
    conversation_id: str = ""
    user_id: str = ""
    user_message: str = ""
    bot_response: str = ""
    timestamp: datetime | None = None
    session_duration: StoredNumber = 0
    resolved: bool = False
    rating: float = 0
    category: str = ""
    error: bool = False
    platform: str = ""
    metadata: LogMetadata = Field(default_factory=LogMetadata)
