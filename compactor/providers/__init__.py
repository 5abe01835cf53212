"""LLM provider abstraction module."""

from compactor.providers.base import LLMProvider, LLMResponse
from compactor.providers.litellm_provider import LiteLLMProvider

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider"]
