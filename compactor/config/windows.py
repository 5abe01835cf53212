"""Model context-window detection and derived compaction budgets."""

from compactor.config.schema import CompactionConfig

# Matched as case-insensitive substrings of the model name, in order
KNOWN_CONTEXT_WINDOWS: dict[str, int] = {
    "anthropic/claude-opus": 200_000,
    "anthropic/claude-sonnet": 200_000,
    "anthropic/claude-haiku": 200_000,
    "openai/gpt-4": 128_000,
    "openai/gpt-4-turbo": 128_000,
    "openai/gpt-3.5-turbo": 16_000,
    "mlx": 32_000,
    "ollama": 32_000,
    "llama": 32_000,
    "mistral": 32_000,
    "qwen": 32_000,
}

# Smallest threshold most agent hosts can run with
MIN_MAX_TOKENS = 16_000

MAX_TOKENS_SHARE = 0.8
KEEP_RECENT_SHARE = 0.25
SUMMARY_SHARE = 0.125
DEFAULT_CHARS_PER_TOKEN = 4.0


def detect_context_window(model: str | None) -> int | None:
    """Guess a model's context window from its name, or None if unknown."""
    if not model:
        return None
    lowered = model.lower()
    for pattern, tokens in KNOWN_CONTEXT_WINDOWS.items():
        if pattern in lowered:
            return tokens
    return None


def suggest_compaction_config(context_window: int | None = None) -> CompactionConfig:
    """
    Derive compaction budgets from a context window.

    max_tokens is 80% of the window (never below MIN_MAX_TOKENS); recent
    and summary budgets are 25% and 12.5% of max_tokens.

    Args:
        context_window: Model context window in tokens, if known.

    Returns:
        A validated CompactionConfig.
    """
    max_tokens = int(context_window * MAX_TOKENS_SHARE) if context_window else MIN_MAX_TOKENS
    max_tokens = max(max_tokens, MIN_MAX_TOKENS)

    return CompactionConfig(
        max_tokens=max_tokens,
        keep_recent_tokens=int(max_tokens * KEEP_RECENT_SHARE),
        summary_max_tokens=int(max_tokens * SUMMARY_SHARE),
        chars_per_token=DEFAULT_CHARS_PER_TOKEN,
    )
