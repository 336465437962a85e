"""LLM provider implementations."""

from vectorqa.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
