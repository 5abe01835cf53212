"""LiteLLM provider implementation for local and hosted models."""

import os
from typing import Any
from loguru import logger

import litellm
from litellm import acompletion

from compactor.providers.base import LLMProvider, LLMResponse

# Model prefixes served by a local OpenAI-compatible endpoint
LOCAL_PREFIXES = ("ollama/", "ollama_chat/", "hosted_vllm/", "openai/", "lm_studio/")


class LiteLLMProvider(LLMProvider):
    """
    LLM provider using LiteLLM.

    Targets the same backend as the agent's ordinary turns, typically a
    local server (Ollama, MLX, llama.cpp, vLLM) reached through api_base.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        default_model: str = "ollama/qwen2.5:7b",
        timeout_seconds: float | None = None,
    ):
        super().__init__(api_key, api_base)
        self.default_model = default_model
        self.request_timeout_seconds = timeout_seconds or float(
            os.getenv("COMPACTOR_LLM_TIMEOUT_SECONDS", "120")
        )

        # Custom endpoint without a known prefix is treated as vLLM
        self.is_vllm = bool(api_base) and not default_model.startswith(LOCAL_PREFIXES)

        # Disable LiteLLM logging noise
        litellm.suppress_debug_info = True

    def _resolve_model(self, model: str | None) -> str:
        model = model or self.default_model
        if self.is_vllm and not model.startswith(LOCAL_PREFIXES):
            model = f"hosted_vllm/{model}"
        return model

    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """
        Send a chat completion request via LiteLLM.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            model: Model identifier (e.g., 'ollama/qwen2.5:7b').
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature.

        Returns:
            LLMResponse; failures come back with finish_reason="error".
        """
        kwargs: dict[str, Any] = {
            "model": self._resolve_model(model),
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "timeout": self.request_timeout_seconds,
        }

        # Pass api_base and api_key directly for custom endpoints
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.api_key:
            kwargs["api_key"] = self.api_key

        try:
            response = await acompletion(**kwargs)
            return self._parse_response(response)
        except Exception as e:
            # Redact potential API keys from error messages
            error_msg = str(e)
            if self.api_key and len(self.api_key) > 8:
                error_msg = error_msg.replace(self.api_key, "***")
            logger.error(f"LLM call error: {error_msg}")
            return LLMResponse(
                content=f"Error calling LLM: {error_msg}",
                finish_reason="error",
            )

    def _parse_response(self, response: Any) -> LLMResponse:
        """Parse LiteLLM response into our standard format."""
        choice = response.choices[0]
        message = choice.message

        usage = {}
        if hasattr(response, "usage") and response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=usage,
        )

    def get_default_model(self) -> str:
        """Get the default model."""
        return self.default_model
