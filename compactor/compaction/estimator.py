"""Token estimation for messages.

Uses a characters-per-token heuristic rather than a real tokenizer. Local
servers do not report usage up front, so the estimate only has to be cheap,
deterministic and monotonic in character count.
"""

import math
from typing import TYPE_CHECKING, Any, Iterable

from loguru import logger

from compactor.errors import EstimationInputError
from compactor.compaction.types import Message

if TYPE_CHECKING:
    from compactor.config.schema import CompactionConfig

DEFAULT_CHARS_PER_TOKEN = 4.0


class TokenEstimator:
    """Approximate token counter based on a chars-per-token ratio."""

    def __init__(
        self,
        chars_per_token: float = DEFAULT_CHARS_PER_TOKEN,
        message_overhead_tokens: int = 0,
    ):
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        if message_overhead_tokens < 0:
            raise ValueError("message_overhead_tokens must not be negative")
        self.chars_per_token = chars_per_token
        self.message_overhead_tokens = message_overhead_tokens

    @classmethod
    def from_config(cls, config: "CompactionConfig") -> "TokenEstimator":
        return cls(
            chars_per_token=config.chars_per_token,
            message_overhead_tokens=config.message_overhead_tokens,
        )

    def estimate(self, text: Any) -> int:
        """
        Estimate the number of tokens in a text string.

        Args:
            text: The text to estimate tokens for.

        Returns:
            ceil(len(text) / chars_per_token); 0 for empty text.

        Raises:
            EstimationInputError: If text is not a string.
        """
        if not isinstance(text, str):
            raise EstimationInputError(f"Expected text, got {type(text).__name__}")
        if not text:
            return 0
        return max(1, math.ceil(len(text) / self.chars_per_token))

    def _estimate_or_zero(self, text: Any, role: str) -> int:
        try:
            return self.estimate(text)
        except EstimationInputError as e:
            logger.debug(f"Counting non-text {role} content as 0 tokens: {e}")
            return 0

    def estimate_message(self, message: Message) -> int:
        """
        Estimate tokens for a single message.

        Args:
            message: The message to estimate.

        Returns:
            Estimated token count including the per-message overhead.
        """
        tokens = self.message_overhead_tokens

        content = message.content
        if isinstance(content, list):
            # Multi-part content; only text parts are counted
            for part in content:
                if isinstance(part, dict) and part.get("type") == "text":
                    tokens += self._estimate_or_zero(part.get("text", ""), message.role)
                else:
                    tokens += self._estimate_or_zero(part, message.role)
        else:
            tokens += self._estimate_or_zero(content, message.role)

        # Tool call names and arguments travel in metadata
        if message.role == "tool_call":
            for tc in message.metadata.get("tool_calls", []) or []:
                if not isinstance(tc, dict):
                    continue
                func = tc.get("function", {}) or {}
                tokens += self._estimate_or_zero(func.get("name", ""), message.role)
                tokens += self._estimate_or_zero(func.get("arguments", ""), message.role)

        return tokens

    def estimate_context(self, messages: Iterable[Message]) -> int:
        """
        Estimate total tokens for a sequence of messages.

        Args:
            messages: Messages in the context.

        Returns:
            Total estimated token count.
        """
        return sum(self.estimate_message(msg) for msg in messages)


def estimate_tokens(text: str, chars_per_token: float = DEFAULT_CHARS_PER_TOKEN) -> int:
    """Estimate tokens for a string with a throwaway estimator."""
    return TokenEstimator(chars_per_token).estimate(text)
