"""Chat commands exposing compaction stats and forced recompaction."""

from datetime import datetime
from typing import Callable

from compactor.compaction.estimator import TokenEstimator
from compactor.compaction.types import CompactionState, CompactionStats, Message
from compactor.config.schema import CompactionConfig

COMMAND_STATS = "context-stats"
COMMAND_COMPACT_NOW = "compact-now"


def _format_entry(entry: CompactionStats) -> str:
    when = datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M:%S")
    line = f"Last turn ({when}): {entry.outcome}"
    if entry.forced:
        line += " (forced)"
    if entry.outcome == "compacted":
        line += (
            f", {entry.tokens_before:,} -> {entry.tokens_after:,} tokens, "
            f"{entry.messages_summarized} messages summarized"
        )
    else:
        line += f", {entry.tokens_before:,} tokens"
    if entry.error:
        line += f"\nError: {entry.error}"
    return line


class CompactionCommands:
    """Handlers for the two compaction commands."""

    def __init__(self, config: CompactionConfig, estimator: TokenEstimator | None = None):
        self.config = config
        self.estimator = estimator or TokenEstimator.from_config(config)
        self._handlers: dict[str, Callable[..., str]] = {
            COMMAND_STATS: self.stats,
            COMMAND_COMPACT_NOW: lambda state, context=None: self.force_recompact(state),
        }

    @property
    def names(self) -> list[str]:
        return list(self._handlers)

    def stats(self, state: CompactionState, context: list[Message] | None = None) -> str:
        """
        Describe current usage and the latest compaction entry.

        Args:
            state: Session compaction state (read only).
            context: Live context; falls back to the last seen estimate.

        Returns:
            Human-readable stats text.
        """
        live = (
            self.estimator.estimate_context(context)
            if context is not None
            else state.last_context_tokens
        )
        percent = live / self.config.max_tokens * 100

        lines = [
            f"Context: ~{live:,} / {self.config.max_tokens:,} tokens ({percent:.0f}%)",
            f"Keep recent: {self.config.keep_recent_tokens:,} tokens, "
            f"summary cap: {self.config.summary_max_tokens:,} tokens",
        ]

        entry = state.latest_stats
        lines.append(_format_entry(entry) if entry else "No turns processed yet.")

        compactions = sum(1 for s in state.stats_history if s.outcome == "compacted")
        lines.append(f"Compactions in history: {compactions}")

        if state.force_recompact:
            lines.append("Forced compaction pending for next turn.")
        if state.unresolvable:
            lines.append(
                "Warning: recent messages alone exceed maxTokens; "
                "compaction is paused until more history accumulates."
            )
        return "\n".join(lines)

    def force_recompact(self, state: CompactionState) -> str:
        """Flag the session for compaction on its next turn."""
        already = state.force_recompact
        state.force_recompact = True
        if already:
            return "Compaction already scheduled for the next turn."
        return "Compaction scheduled for the next turn."

    def handle(
        self,
        name: str,
        state: CompactionState,
        context: list[Message] | None = None,
    ) -> str:
        """
        Run a command by name.

        Raises:
            KeyError: If the command is unknown.
        """
        command = name.lstrip("/")
        if command not in self._handlers:
            raise KeyError(f"Unknown command: {name}")
        return self._handlers[command](state, context)
