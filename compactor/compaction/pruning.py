"""Old/recent boundary selection for compaction."""

from loguru import logger

from compactor.compaction.estimator import TokenEstimator
from compactor.compaction.types import Message


def _result_call_index(messages: list[Message], index: int, call_index: dict[str, int]) -> int | None:
    """Find the tool_call message a tool_result at ``index`` belongs to."""
    for call_id in messages[index].tool_call_ids:
        if call_id in call_index and call_index[call_id] < index:
            return call_index[call_id]

    if messages[index].tool_call_ids:
        # Linked to a call that is not in this context
        return None

    # Unlinked result: pair with the nearest preceding call
    for i in range(index - 1, -1, -1):
        if messages[i].role == "tool_call":
            return i
    return None


def align_boundary_to_tool_pairs(messages: list[Message], boundary: int) -> int:
    """
    Move a boundary back so no tool call/result pair straddles it.

    Args:
        messages: Full message sequence.
        boundary: Tentative index of the first "recent" message.

    Returns:
        Adjusted boundary (never greater than the input).
    """
    call_index: dict[str, int] = {}
    for i, msg in enumerate(messages):
        if msg.role == "tool_call":
            for call_id in msg.tool_call_ids:
                call_index[call_id] = i

    changed = True
    while changed and boundary > 0:
        changed = False
        for i in range(boundary, len(messages)):
            if messages[i].role != "tool_result":
                continue
            paired = _result_call_index(messages, i, call_index)
            if paired is not None and paired < boundary:
                boundary = paired
                changed = True
                break

    return boundary


def split_messages_by_recent_budget(
    messages: list[Message],
    keep_recent_tokens: int,
    estimator: TokenEstimator,
) -> tuple[list[Message], list[Message]]:
    """
    Split messages into (old, recent) under a token budget for recent.

    Scans backward from the newest message. The newest message is always
    kept, so recent may exceed the budget by one whole message. Prior
    summaries are treated like any other message.

    Args:
        messages: Chronological message sequence.
        keep_recent_tokens: Budget for verbatim recent messages.
        estimator: Token estimator.

    Returns:
        Tuple of (old messages to summarize, recent messages to keep).
    """
    if not messages:
        return [], []

    boundary = len(messages)
    recent_tokens = 0

    for index in range(len(messages) - 1, -1, -1):
        message_tokens = estimator.estimate_message(messages[index])
        if boundary < len(messages) and recent_tokens + message_tokens > keep_recent_tokens:
            break
        recent_tokens += message_tokens
        boundary = index

    aligned = align_boundary_to_tool_pairs(messages, boundary)
    if aligned != boundary:
        logger.debug(f"Moved compaction boundary {boundary} -> {aligned} to keep tool pairs together")

    return list(messages[:aligned]), list(messages[aligned:])


def find_tool_pair_violations(old: list[Message], recent: list[Message]) -> set[str]:
    """
    Return tool call ids whose call and result ended up on different sides.

    Args:
        old: Messages before the boundary.
        recent: Messages at or after the boundary.

    Returns:
        Set of offending tool call ids (empty when the split is clean).
    """
    old_calls = {cid for m in old if m.role == "tool_call" for cid in m.tool_call_ids}
    recent_results = {cid for m in recent if m.role == "tool_result" for cid in m.tool_call_ids}
    return old_calls & recent_results
