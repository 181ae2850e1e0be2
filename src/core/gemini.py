"""Gemini completion client using Vertex AI, returning JSON objects."""

import json
import logging
from functools import lru_cache
from typing import Any

import vertexai
from vertexai.generative_models import Content, GenerationConfig, GenerativeModel, Part

from src.config import get_settings

logger = logging.getLogger(__name__)


class CompletionError(RuntimeError):
    """The completion service failed or did not return a JSON object."""


class GeminiClient:
    """Wrapper for JSON-mode Gemini completions on Vertex AI."""

    MAX_OUTPUT_TOKENS = 2048

    def __init__(self, project_id: str | None, region: str, model_id: str):
        self.project_id = project_id
        self.region = region
        self.model_id = model_id
        self._model: GenerativeModel | None = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        """Initialize Vertex AI if not already done."""
        if not self._initialized:
            try:
                vertexai.init(project=self.project_id, location=self.region)
                self._initialized = True
            except Exception as e:
                raise CompletionError(f"Vertex AI initialization failed: {e}") from e

    @property
    def model(self) -> GenerativeModel:
        """Get or create the Gemini model."""
        self._ensure_initialized()
        if self._model is None:
            self._model = GenerativeModel(self.model_id)
        return self._model

    async def complete_json(self, prompt: str, temperature: float = 0.3) -> dict[str, Any]:
        """
        Send a prompt and parse the reply as a JSON object.

        Args:
            prompt: Full prompt, including the JSON shape to answer with
            temperature: Sampling temperature; keep low for repeatable judgments

        Returns:
            Parsed JSON object

        Raises:
            CompletionError: If the call fails or the reply is not a JSON object
        """
        contents = [Content(role="user", parts=[Part.from_text(prompt)])]
        try:
            response = await self.model.generate_content_async(
                contents,
                generation_config=GenerationConfig(
                    temperature=temperature,
                    max_output_tokens=self.MAX_OUTPUT_TOKENS,
                    response_mime_type="application/json",
                ),
            )
            text = response.text
        except CompletionError:
            raise
        except Exception as e:
            raise CompletionError(f"Gemini request failed: {e}") from e

        return parse_json_object(text)


def parse_json_object(text: str | None) -> dict[str, Any]:
    """Parse a completion reply that must be a single JSON object."""
    if not text or not text.strip():
        raise CompletionError("Empty completion response")
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Completion returned invalid JSON: {text[:200]!r}")
        raise CompletionError(f"Completion response is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise CompletionError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


@lru_cache
def get_gemini_client() -> GeminiClient:
    """Get cached Gemini client built from settings (dependency injection)."""
    settings = get_settings()
    return GeminiClient(
        project_id=settings.google_cloud_project or None,
        region=settings.vertex_region,
        model_id=settings.analysis_model,
    )
