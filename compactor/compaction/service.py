"""Compaction engine: decides per turn whether to compact and does it."""

from typing import Any

from loguru import logger

from compactor.errors import SummarizationError
from compactor.compaction.estimator import TokenEstimator
from compactor.compaction.pruning import split_messages_by_recent_budget
from compactor.compaction.summarizer import Summarizer
from compactor.compaction.types import (
    CompactionState,
    CompactionStats,
    Message,
    now,
)
from compactor.config.schema import CompactionConfig, validate_compaction_config


class CompactionEngine:
    """
    Engine for keeping a session's context under its token limit.

    Handles:
    - Threshold-triggered compaction before each turn
    - Forced recompaction requested by command
    - Fallback to the untouched context when summarization fails
    - A no-progress guard when recent material alone is over the limit
    """

    def __init__(
        self,
        config: CompactionConfig | dict[str, Any] | None,
        summarizer: Summarizer,
        estimator: TokenEstimator | None = None,
    ):
        """
        Initialize the compaction engine.

        Args:
            config: Compaction configuration (validated here).
            summarizer: Summarizer bound to the session's model.
            estimator: Token estimator; built from config when omitted.

        Raises:
            ConfigurationError: If the config is missing or invalid.
        """
        self.config = validate_compaction_config(config)
        self.summarizer = summarizer
        self.estimator = estimator or TokenEstimator.from_config(self.config)
        if summarizer.estimator is None:
            summarizer.estimator = self.estimator

    def should_compact(self, total_tokens: int) -> bool:
        """Check whether a context of this size is over the threshold."""
        return total_tokens > self.config.max_tokens

    def _is_suppressed(self, state: CompactionState, total_tokens: int) -> bool:
        """
        Check whether the no-progress guard should hold off compaction.

        Suppression lifts once enough new material has arrived that a
        fresh split can move something into the old segment.
        """
        if state.suppressed_at_tokens is None:
            return False
        return total_tokens - state.suppressed_at_tokens < self.config.keep_recent_tokens

    def _record(self, state: CompactionState, stats: CompactionStats) -> None:
        state.record(stats, self.config.stats_history_limit)

    def _note_no_progress(self, state: CompactionState, total_tokens: int) -> None:
        state.no_progress_count += 1
        if state.no_progress_count < self.config.max_no_progress_compactions:
            return
        first_time = state.suppressed_at_tokens is None
        # Re-armed on every further miss
        state.suppressed_at_tokens = total_tokens
        if first_time:
            logger.warning(
                f"Compaction made no progress {state.no_progress_count} time(s) in a row: "
                f"recent messages alone are ~{total_tokens} tokens against max_tokens "
                f"{self.config.max_tokens}. Lower keepRecentTokens or raise maxTokens."
            )

    def _reset_progress(self, state: CompactionState) -> None:
        state.no_progress_count = 0
        state.suppressed_at_tokens = None

    async def process(
        self,
        context: list[Message],
        state: CompactionState | None = None,
    ) -> tuple[list[Message], CompactionState]:
        """
        Evaluate one turn and compact the context if needed.

        The given state is never mutated; a cancelled or failed call leaves
        it exactly as it was.

        Args:
            context: Full chronological context for this turn.
            state: The session's compaction state (created if None).

        Returns:
            Tuple of (context to send to the model, updated state).
        """
        new_state = state.copy() if state is not None else CompactionState()
        context = list(context)
        total_tokens = self.estimator.estimate_context(context)

        if new_state.force_recompact:
            logger.info(f"Forced compaction requested ({total_tokens} tokens)")
            return await self._compact(context, total_tokens, new_state, forced=True)

        if self.should_compact(total_tokens):
            if self._is_suppressed(new_state, total_tokens):
                logger.debug(
                    f"Compaction suppressed at {total_tokens} tokens (no progress guard)"
                )
                self._record(new_state, CompactionStats(
                    timestamp=now(),
                    tokens_before=total_tokens,
                    tokens_after=total_tokens,
                    outcome="suppressed",
                ))
                new_state.last_context_tokens = total_tokens
                return context, new_state

            logger.info(
                f"Compacting context: {total_tokens} tokens exceeds {self.config.max_tokens}"
            )
            return await self._compact(context, total_tokens, new_state, forced=False)

        logger.debug(f"Context at {total_tokens}/{self.config.max_tokens} tokens, no compaction")
        self._reset_progress(new_state)
        self._record(new_state, CompactionStats(
            timestamp=now(),
            tokens_before=total_tokens,
            tokens_after=total_tokens,
        ))
        new_state.last_context_tokens = total_tokens
        return context, new_state

    async def _compact(
        self,
        context: list[Message],
        total_tokens: int,
        state: CompactionState,
        forced: bool,
    ) -> tuple[list[Message], CompactionState]:
        """Split, summarize and replace; any failure returns the original context."""
        old, recent = split_messages_by_recent_budget(
            context, self.config.keep_recent_tokens, self.estimator
        )
        state.last_context_tokens = total_tokens

        if not old:
            logger.info("Nothing old enough to summarize; leaving context unchanged")
            state.force_recompact = False
            if not forced and self.should_compact(total_tokens):
                self._note_no_progress(state, total_tokens)
            self._record(state, CompactionStats(
                timestamp=now(),
                tokens_before=total_tokens,
                tokens_after=total_tokens,
                outcome="skipped",
                forced=forced,
            ))
            return context, state

        try:
            summary = await self.summarizer.summarize(old, self.config.summary_max_tokens)
        except SummarizationError as e:
            logger.warning(f"Compaction summarization failed, keeping full context: {e}")
            state.force_recompact = False
            self._record(state, CompactionStats(
                timestamp=now(),
                tokens_before=total_tokens,
                tokens_after=total_tokens,
                outcome="failed",
                forced=forced,
                error=str(e),
            ))
            return context, state

        new_context = [summary, *recent]
        tokens_after = self.estimator.estimate_context(new_context)

        state.force_recompact = False
        state.last_compaction_timestamp = now()
        state.last_compaction_boundary_index = len(old)
        state.last_context_tokens = tokens_after
        self._record(state, CompactionStats(
            timestamp=state.last_compaction_timestamp,
            tokens_before=total_tokens,
            tokens_after=tokens_after,
            messages_summarized=len(old),
            outcome="compacted",
            forced=forced,
        ))

        if self.should_compact(tokens_after):
            self._note_no_progress(state, tokens_after)
        else:
            self._reset_progress(state)

        logger.info(
            f"Compaction complete: {total_tokens} -> {tokens_after} tokens, "
            f"summarized {len(old)} messages, kept {len(recent)}"
        )
        return new_context, state
