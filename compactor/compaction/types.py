"""Types for compaction system."""

import time
from dataclasses import dataclass, field, replace
from typing import Any, Literal

Role = Literal["user", "assistant", "system", "tool_call", "tool_result"]

CompactionOutcome = Literal["passthrough", "compacted", "failed", "skipped", "suppressed"]

SUMMARY_PREFIX = "[Previous conversation summary]"

# Keys that are folded into Message fields instead of metadata
_DICT_FIELDS = ("role", "content", "tool_calls", "tool_call_id")


@dataclass(frozen=True)
class Message:
    """A single transcript entry. Never mutated; transformations build new lists."""

    role: Role
    content: Any = ""
    metadata: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def is_summary(self) -> bool:
        """True for summaries produced by an earlier compaction."""
        return bool(self.metadata.get("compaction"))

    @property
    def tool_call_ids(self) -> tuple[str, ...]:
        """Ids linking a tool call to its result(s)."""
        ids: list[str] = []
        single = self.metadata.get("tool_call_id")
        if single:
            ids.append(str(single))
        for call_id in self.metadata.get("tool_call_ids", ()) or ():
            if call_id and str(call_id) not in ids:
                ids.append(str(call_id))
        return tuple(ids)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """
        Build a message from an OpenAI-style chat dict.

        Assistant messages carrying ``tool_calls`` become ``tool_call``
        messages, and ``tool`` messages become ``tool_result`` messages.
        Dicts already using ``tool_call`` or ``tool_result`` keep their role.

        Args:
            data: Chat message dict.

        Returns:
            The equivalent Message.
        """
        role = data.get("role", "user")
        content = data.get("content")
        if content is None:
            content = ""
        metadata = {k: v for k, v in data.items() if k not in _DICT_FIELDS}

        tool_calls = data.get("tool_calls") or []
        if role == "tool_call" or (role == "assistant" and tool_calls):
            if tool_calls:
                metadata["tool_calls"] = list(tool_calls)
                metadata["tool_call_ids"] = [
                    tc.get("id") for tc in tool_calls if isinstance(tc, dict) and tc.get("id")
                ]
            return cls(role="tool_call", content=content, metadata=metadata)

        if role in ("tool", "tool_result"):
            if data.get("tool_call_id"):
                metadata["tool_call_id"] = data["tool_call_id"]
            return cls(role="tool_result", content=content, metadata=metadata)

        if role == "system" and isinstance(content, str) and content.startswith(SUMMARY_PREFIX):
            metadata.setdefault("compaction", True)

        if role not in ("user", "assistant", "system"):
            role = "user"
        return cls(role=role, content=content, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        """Convert back to an OpenAI-style chat dict."""
        if self.role == "tool_call":
            tool_calls = self.metadata.get("tool_calls") or [
                {"id": call_id, "type": "function", "function": {"name": "", "arguments": ""}}
                for call_id in self.tool_call_ids
            ]
            return {"role": "assistant", "content": self.content or None, "tool_calls": tool_calls}

        if self.role == "tool_result":
            data: dict[str, Any] = {"role": "tool", "content": self.content}
            if self.tool_call_ids:
                data["tool_call_id"] = self.tool_call_ids[0]
            if self.metadata.get("name"):
                data["name"] = self.metadata["name"]
            return data

        return {"role": self.role, "content": self.content}


def messages_from_dicts(messages: list[dict[str, Any]]) -> list[Message]:
    """Convert a list of chat dicts into Messages."""
    return [Message.from_dict(m) for m in messages]


def messages_to_dicts(messages: list[Message]) -> list[dict[str, Any]]:
    """Convert Messages back into chat dicts."""
    return [m.to_dict() for m in messages]


@dataclass
class CompactionStats:
    """One turn's evaluation, kept for the stats command."""

    timestamp: float
    tokens_before: int
    tokens_after: int
    messages_summarized: int = 0
    outcome: CompactionOutcome = "passthrough"
    forced: bool = False
    error: str | None = None


@dataclass
class CompactionState:
    """Per-session compaction bookkeeping."""

    last_compaction_timestamp: float | None = None
    last_compaction_boundary_index: int | None = None
    force_recompact: bool = False
    stats_history: list[CompactionStats] = field(default_factory=list)
    last_context_tokens: int = 0

    # No-progress guard
    no_progress_count: int = 0
    suppressed_at_tokens: int | None = None

    @property
    def latest_stats(self) -> CompactionStats | None:
        return self.stats_history[-1] if self.stats_history else None

    @property
    def unresolvable(self) -> bool:
        """True while repeated compactions could not get under the limit."""
        return self.suppressed_at_tokens is not None

    def record(self, stats: CompactionStats, limit: int = 50) -> None:
        """Append a stats entry, dropping the oldest beyond ``limit``."""
        self.stats_history.append(stats)
        if len(self.stats_history) > limit:
            del self.stats_history[: len(self.stats_history) - limit]

    def copy(self) -> "CompactionState":
        """Detached copy; the engine only ever mutates copies."""
        return replace(self, stats_history=list(self.stats_history))


def now() -> float:
    """Current wall-clock time in epoch seconds."""
    return time.time()
