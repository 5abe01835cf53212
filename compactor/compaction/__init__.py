"""Compaction system for context management."""

from compactor.compaction.estimator import TokenEstimator, estimate_tokens
from compactor.compaction.summarizer import Summarizer, build_summary_message
from compactor.compaction.pruning import (
    align_boundary_to_tool_pairs,
    find_tool_pair_violations,
    split_messages_by_recent_budget,
)
from compactor.compaction.service import CompactionEngine
from compactor.compaction.commands import (
    COMMAND_COMPACT_NOW,
    COMMAND_STATS,
    CompactionCommands,
)
from compactor.compaction.types import (
    CompactionState,
    CompactionStats,
    Message,
    messages_from_dicts,
    messages_to_dicts,
)

__all__ = [
    # Estimator
    "TokenEstimator",
    "estimate_tokens",
    # Summarizer
    "Summarizer",
    "build_summary_message",
    # Pruning
    "align_boundary_to_tool_pairs",
    "find_tool_pair_violations",
    "split_messages_by_recent_budget",
    # Engine
    "CompactionEngine",
    # Commands
    "COMMAND_COMPACT_NOW",
    "COMMAND_STATS",
    "CompactionCommands",
    # Types
    "CompactionState",
    "CompactionStats",
    "Message",
    "messages_from_dicts",
    "messages_to_dicts",
]
