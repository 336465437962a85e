"""Abstract base class for LLM completion providers.

Completions come in two shapes: a single awaited string, used by the
cached question-answering path, and an async iterator of text deltas for
interactive streaming responses.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


# Concrete implementation: OpenAILLMProvider (vectorqa/providers/llm/)
class ILLMProvider(ABC):
    """Contract for language-model completion services."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 1000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            Instructions that constrain the model's behaviour.
        user_prompt:
            The request content (context and question).
        model:
            Model identifier; ``None`` selects the provider's default.
        temperature:
            Sampling temperature.
        max_tokens:
            Upper bound on generated tokens.

        Returns
        -------
        str
            The model's text output.

        Raises
        ------
        vectorqa.utils.errors.LLMError
            If the API call fails or returns no content.
        """

    @abstractmethod
    def stream_complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 1000,
    ) -> AsyncIterator[str]:
        """Yield the completion incrementally as text deltas.

        Same parameters and failure semantics as :meth:`complete`.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
