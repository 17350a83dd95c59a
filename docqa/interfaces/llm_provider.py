"""Abstract base class for streaming LLM providers.

Implementations may wrap the Anthropic API (Claude), OpenAI, or a local
Ollama server.  Every call-site works against :class:`ILLMProvider` so the
backend can be swapped in ``main.py`` without touching the chat pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider, OllamaLLMProvider
# Located in: docqa/providers/llm/
class ILLMProvider(ABC):
    """Contract for chat-completion services that stream their output."""

    @abstractmethod
    def stream_chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> AsyncIterator[str]:
        """Stream a chat completion as a sequence of text fragments.

        Parameters
        ----------
        messages:
            Ordered ``{"role", "content"}`` dicts.  The first message may have
            role ``system``; the rest alternate ``user`` / ``assistant`` and
            end with the new user question.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        AsyncIterator[str]
            Finite, non-restartable iterator of non-empty text fragments in
            generation order.  Closing it (``aclose``) abandons the request.

        Raises
        ------
        docqa.utils.errors.GenerationError
            If the API call fails before or during streaming.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Implementations check credentials without making an inference call.
        """
