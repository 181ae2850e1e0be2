"""Language helpers for stored chat messages."""

from langdetect import DetectorFactory, LangDetectException, detect

# langdetect is randomized by default; pin it so re-fetching a session yields the same tags
DetectorFactory.seed = 0

DEFAULT_LANGUAGE = "en"
MIN_DETECTABLE_LENGTH = 10


def resolve_language(declared: str | None, content: str) -> str:
    """
    Return the language tag of a message.

    The tag recorded by the chat client wins. Otherwise the language is
    detected from the content, falling back to English for short or
    undetectable text.

    Args:
        declared: Language stored with the message, if any
        content: Message text

    Returns:
        ISO 639-1 language code (e.g., 'en', 'cs', 'de')
    """
    if declared:
        return declared.strip().lower()
    if not content or len(content.strip()) < MIN_DETECTABLE_LENGTH:
        return DEFAULT_LANGUAGE
    try:
        return detect(content)
    except LangDetectException:
        return DEFAULT_LANGUAGE
