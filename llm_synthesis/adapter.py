"""LLM adapters for narrative generation.

Provides a base interface and concrete adapters for OpenAI-compatible
APIs and a deterministic mock for testing.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from app.config import LLMSettings

logger = logging.getLogger(__name__)


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str, system: Optional[str] = None) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: The fully formatted user prompt.
            system: Optional system instructions.

        Returns:
            Raw string response from the model (expected to be sectioned text).
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Configured for non-streaming output at a low temperature with a bounded
    completion budget.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 1200,
        base_url: Optional[str] = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            api_key: API key for the endpoint.
            model: Model identifier.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens in the completion.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            timeout_seconds: Per-request timeout.
        """
        from openai import OpenAI

        client_kwargs: dict = {"api_key": api_key, "timeout": timeout_seconds}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    def generate(self, prompt: str, system: Optional[str] = None) -> str:
        """Call the OpenAI chat completion API.

        Args:
            prompt: The fully formatted user prompt.
            system: Optional system instructions.

        Returns:
            Raw string content from the model response.
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            stream=False,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()


# ---------------------------------------------------------------------------
# Fixed mock response used for local testing.
# ---------------------------------------------------------------------------
_MOCK_RESPONSE = """\
1. EXECUTIVE SUMMARY:
Spend was steady across the window while conversions improved. Efficiency is trending in the right direction.

2. KEY INSIGHTS:
- Conversions grew faster than spend
- Click volume stayed flat

3. ACTIONABLE RECOMMENDATIONS:
- Shift budget toward the best converting campaigns
- Refresh creatives on flat-click campaigns

4. CHART EXPLANATIONS:
- Metrics Overview: compares the size of each metric side by side.
"""


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed four-section response.

    Used for local testing and CI pipelines where no LLM API
    is available.
    """

    def generate(self, prompt: str, system: Optional[str] = None) -> str:
        """Return a fixed sectioned response regardless of input.

        Args:
            prompt: Ignored - present only to satisfy the interface.
            system: Ignored.

        Returns:
            A response the section parser fully understands.
        """
        return _MOCK_RESPONSE


def build_llm_adapter(settings: LLMSettings) -> Optional[BaseLLMAdapter]:
    """Pick the adapter for the configured settings.

    Returns ``None`` when no credential is configured, which selects the
    deterministic narrative.
    """
    if settings.adapter == "mock":
        return MockLLMAdapter()
    if not settings.api_key:
        logger.info("No LLM API key configured; narratives use deterministic fallback text")
        return None
    return OpenAILLMAdapter(
        api_key=settings.api_key,
        model=settings.model,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        base_url=settings.base_url,
        timeout_seconds=settings.timeout_seconds,
    )
