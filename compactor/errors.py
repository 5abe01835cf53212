"""Exceptions raised by the compaction system."""


class CompactionError(Exception):
    """Base exception for compaction errors."""

    pass


class EstimationInputError(CompactionError):
    """Raised when non-text content is handed to the token estimator."""

    pass


class SummarizationError(CompactionError):
    """Raised when the model fails to produce a usable summary."""

    pass


class ConfigurationError(CompactionError):
    """Raised when the compaction config is missing or invalid."""

    pass
