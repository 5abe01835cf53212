"""Message summarization for compaction."""

import asyncio
import json
from typing import Any

from loguru import logger

from compactor.errors import SummarizationError
from compactor.compaction.estimator import TokenEstimator
from compactor.compaction.types import SUMMARY_PREFIX, Message, now
from compactor.providers.base import LLMProvider


SUMMARIZE_SYSTEM_PROMPT = """You are a conversation summarizer. Your task is to condense older conversation history so the assistant can continue without it.

Focus on:
1. Topics discussed
2. Key decisions made
3. Open questions and unresolved items
4. Tool results that later turns may depend on
5. Current state of any tasks being worked on

Keep the summary clear and factual. Use bullet points where appropriate."""

SUMMARIZE_USER_PROMPT = """Please summarize the following conversation:

{conversation}

Keep the summary under roughly {max_tokens} tokens. If earlier summaries appear above, fold them into the new one."""


def _render_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Extract text from multi-part content
        return " ".join(
            p.get("text", "") for p in content if isinstance(p, dict) and p.get("type") == "text"
        )
    try:
        return json.dumps(content)
    except (TypeError, ValueError):
        return str(content)


def format_messages_for_summary(messages: list[Message]) -> str:
    """Format messages as text for inclusion in the summarization prompt."""
    parts = []
    for msg in messages:
        content = _render_content(msg.content)

        if msg.is_summary:
            parts.append(f"[previous summary]: {content}")
        elif msg.role == "tool_call":
            calls = []
            for tc in msg.metadata.get("tool_calls", []) or []:
                func = tc.get("function", {}) if isinstance(tc, dict) else {}
                calls.append(f"{func.get('name', 'tool')}({_render_content(func.get('arguments', ''))})")
            line = f"[tool_call]: {', '.join(calls) or ', '.join(msg.tool_call_ids)}"
            if content:
                line += f"\n{content}"
            parts.append(line)
        elif content:
            parts.append(f"[{msg.role}]: {content}")

    return "\n\n".join(parts)


def build_summary_message(summary: str, summarized_count: int) -> Message:
    """Wrap summary text in a system message tagged as a compaction artifact."""
    return Message(
        role="system",
        content=f"{SUMMARY_PREFIX}\n\n{summary.strip()}",
        metadata={
            "compaction": True,
            "summarized_messages": summarized_count,
            "created_at": now(),
        },
    )


class Summarizer:
    """Summarizes the old segment through the session's own model."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str | None = None,
        timeout_seconds: float = 120.0,
        estimator: TokenEstimator | None = None,
    ):
        self.provider = provider
        self.model = model or provider.get_default_model()
        self.timeout_seconds = timeout_seconds
        # Bound by CompactionEngine when left unset
        self.estimator = estimator

    async def summarize(self, messages: list[Message], summary_max_tokens: int) -> Message:
        """
        Generate a summary message for the given messages.

        Args:
            messages: Old messages to condense.
            summary_max_tokens: Output budget hint for the model.

        Returns:
            A system Message tagged as a compaction summary.

        Raises:
            SummarizationError: On backend error, timeout or empty output.
        """
        if not messages:
            raise SummarizationError("Nothing to summarize")

        user_prompt = SUMMARIZE_USER_PROMPT.format(
            conversation=format_messages_for_summary(messages),
            max_tokens=summary_max_tokens,
        )

        try:
            response = await asyncio.wait_for(
                self.provider.chat(
                    messages=[
                        {"role": "system", "content": SUMMARIZE_SYSTEM_PROMPT},
                        {"role": "user", "content": user_prompt},
                    ],
                    model=self.model,
                    max_tokens=summary_max_tokens,
                    temperature=0.2,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise SummarizationError(
                f"Summarization timed out after {self.timeout_seconds}s"
            ) from e
        except Exception as e:
            raise SummarizationError(f"Summarization request failed: {e}") from e

        if response.is_error:
            raise SummarizationError(response.content or "Provider returned an error")

        summary = (response.content or "").strip()
        if not summary:
            raise SummarizationError("Model returned an empty summary")

        # The cap is a prompt hint only; truncating prose would cut mid-thought
        summary_tokens = self.estimator.estimate(summary) if self.estimator else 0
        if summary_tokens > summary_max_tokens:
            logger.debug(
                f"Summary is ~{summary_tokens} tokens, over the {summary_max_tokens} hint; keeping as-is"
            )

        return build_summary_message(summary, len(messages))
