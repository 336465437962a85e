"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When a custom ``openai_base_url`` is configured (TogetherAI, Groq, a local
vLLM server, ...) the client points at that URL instead of the default
OpenAI endpoint, so one adapter covers every OpenAI-compatible API.
"""

from __future__ import annotations

from typing import AsyncIterator

import openai
import structlog

from vectorqa.config.settings import Settings
from vectorqa.interfaces.llm_provider import ILLMProvider
from vectorqa.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API.

    The model can be chosen per call; ``settings.openai_text_model`` is the
    default.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._api_key = settings.openai_api_key
        self._timeout = settings.llm_timeout_seconds

        if client is None:
            client_kwargs: dict = {
                "api_key": self._api_key or "missing",
                "timeout": openai.Timeout(self._timeout, connect=5.0),
            }
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            client = openai.AsyncOpenAI(**client_kwargs)

        self._client = client
        self._default_model = settings.openai_text_model or "gpt-3.5-turbo"
        self._provider_label = (
            "openai-compatible" if settings.openai_base_url else "openai"
        )

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 1000,
    ) -> str:
        """Generate a text completion via the chat completions API."""
        model_name = model or self._default_model
        try:
            response = await self._client.chat.completions.create(
                model=model_name,
                messages=self._messages(system_prompt, user_prompt),
                temperature=temperature,
                max_tokens=max_tokens,
            )
            content = response.choices[0].message.content
            if content is None:
                raise LLMError(
                    message=f"{self._provider_label} returned empty response",
                    provider_name=self.get_provider_name(),
                )
            logger.info(
                "openai_completion",
                model=model_name,
                provider=self._provider_label,
                tokens=response.usage.total_tokens if response.usage else None,
            )
            return content
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._provider_label} timed out after {self._timeout}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def stream_complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 1000,
    ) -> AsyncIterator[str]:
        """Yield completion text deltas as the model produces them."""
        model_name = model or self._default_model
        try:
            stream = await self._client.chat.completions.create(
                model=model_name,
                messages=self._messages(system_prompt, user_prompt),
                temperature=temperature,
                max_tokens=max_tokens,
                stream=True,
            )
            async for event in stream:
                if not event.choices:
                    continue
                delta = event.choices[0].delta.content
                if delta:
                    yield delta
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} streaming error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("openai_stream_complete", model=model_name, provider=self._provider_label)

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def _messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
