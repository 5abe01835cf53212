"""Configuration schema using Pydantic."""

from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings

from compactor.errors import ConfigurationError


class CompactionConfig(BaseModel):
    """Context compaction configuration. Budget fields have no defaults."""
    max_tokens: int = Field(gt=0)  # Trigger threshold
    keep_recent_tokens: int = Field(gt=0)  # Verbatim recent budget
    summary_max_tokens: int = Field(gt=0)  # Advisory summary length
    chars_per_token: float = Field(gt=0)
    message_overhead_tokens: int = Field(default=0, ge=0)
    summary_timeout_seconds: float = Field(default=120.0, gt=0)
    max_no_progress_compactions: int = Field(default=2, ge=1)
    stats_history_limit: int = Field(default=50, ge=1)

    @model_validator(mode="after")
    def _check_budgets(self) -> "CompactionConfig":
        if self.keep_recent_tokens >= self.max_tokens:
            raise ValueError(
                f"keep_recent_tokens ({self.keep_recent_tokens}) must be less than "
                f"max_tokens ({self.max_tokens})"
            )
        if self.keep_recent_tokens + self.summary_max_tokens >= self.max_tokens:
            logger.warning(
                f"keep_recent_tokens + summary_max_tokens ({self.keep_recent_tokens} + "
                f"{self.summary_max_tokens}) is not below max_tokens ({self.max_tokens}); "
                "compacted contexts may still trigger compaction"
            )
        return self


class ProviderConfig(BaseModel):
    """LLM backend used for summaries (same backend as ordinary turns)."""
    model: str = "ollama/qwen2.5:7b"
    api_key: str = ""
    api_base: str | None = "http://localhost:11434"
    timeout_seconds: float = 120.0


class Config(BaseSettings):
    """Root configuration for compactor."""
    enabled: bool = True
    compaction: CompactionConfig | None = None
    provider: ProviderConfig = Field(default_factory=ProviderConfig)

    def require_compaction(self) -> CompactionConfig:
        """Return the compaction config or fail; budgets are never guessed."""
        if self.compaction is None:
            raise ConfigurationError(
                "Missing compaction config (maxTokens, keepRecentTokens, "
                "summaryMaxTokens, charsPerToken)"
            )
        return self.compaction

    class Config:
        env_prefix = "COMPACTOR_"
        env_nested_delimiter = "__"


def validate_compaction_config(data: CompactionConfig | dict[str, Any] | None) -> CompactionConfig:
    """
    Validate compaction settings.

    Args:
        data: A CompactionConfig, a snake_case dict, or None.

    Returns:
        The validated CompactionConfig.

    Raises:
        ConfigurationError: If the config is missing or invalid.
    """
    if data is None:
        raise ConfigurationError("Compaction config is required")
    if isinstance(data, CompactionConfig):
        return data
    try:
        return CompactionConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid compaction config: {describe_validation_error(e)}") from e


def describe_validation_error(error: ValidationError) -> str:
    """Flatten a pydantic error into one readable line."""
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
        for err in error.errors()
    )
