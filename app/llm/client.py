# app/llm/client.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Dict, Optional

from openai import OpenAI

from app.config import Settings, get_settings
from app.logging_config import get_logger

logger = get_logger(__name__)

Message = Dict[str, str]


class LLMClient(ABC):
    """
    Chat-completion seam used for optional clinical-note enrichment.
    The rule engine never depends on it; a failing client only costs
    the rewrite.
    """

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> str:
        """Return the assistant reply for ``messages`` ({"role", "content"} dicts)."""
        ...


class OpenAILLMClient(LLMClient):
    """Any OpenAI-compatible endpoint, selected through ``OPENAI_BASE_URL``."""

    def __init__(self, settings: Optional[Settings] = None, model: Optional[str] = None):
        settings = settings or get_settings()
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY must be set to enable note enrichment.")

        self._client = OpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout_seconds,
        )
        self.default_model = model or settings.llm_model

    def chat(
        self,
        messages: List[Message],
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> str:
        response = self._client.chat.completions.create(
            model=model or self.default_model,
            messages=messages,
            temperature=temperature,
        )
        return response.choices[0].message.content or ""


def build_llm_client(settings: Settings) -> Optional[LLMClient]:
    """
    Client for note enrichment, or None when enrichment is switched off
    or no API key is configured.
    """
    if not settings.ai_note_enrichment:
        return None
    if not settings.openai_api_key:
        logger.warning("AI_NOTE_ENRICHMENT is on but OPENAI_API_KEY is missing; notes stay rule-based")
        return None
    return OpenAILLMClient(settings)
