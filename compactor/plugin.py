"""Context compactor plugin - the host-facing entry point.

Wires the compaction engine behind a before-turn hook and exposes the
context-stats / compact-now commands, with one state per session.
"""

from typing import Any

from loguru import logger

from compactor.compaction.commands import CompactionCommands
from compactor.compaction.estimator import TokenEstimator
from compactor.compaction.service import CompactionEngine
from compactor.compaction.summarizer import Summarizer
from compactor.compaction.types import Message, messages_from_dicts, messages_to_dicts
from compactor.config.schema import Config
from compactor.providers.base import LLMProvider
from compactor.session.manager import SessionStateManager


class ContextCompactorPlugin:
    """Context compaction for a host agent runtime.

    Provides:
    - before_turn hook that returns the (possibly compacted) context
    - context-stats and compact-now command handlers
    - Independent compaction state per session
    """

    def __init__(self, config: Config, provider: LLMProvider | None = None):
        self.config = config
        compaction = config.require_compaction()

        if provider is None:
            from compactor.providers.litellm_provider import LiteLLMProvider

            provider = LiteLLMProvider(
                api_key=config.provider.api_key or None,
                api_base=config.provider.api_base,
                default_model=config.provider.model,
                timeout_seconds=config.provider.timeout_seconds,
            )

        self.estimator = TokenEstimator.from_config(compaction)
        self.summarizer = Summarizer(
            provider,
            model=config.provider.model,
            timeout_seconds=compaction.summary_timeout_seconds,
            estimator=self.estimator,
        )
        self.engine = CompactionEngine(compaction, self.summarizer, self.estimator)
        self.commands = CompactionCommands(compaction, self.estimator)
        self.sessions = SessionStateManager()

    @property
    def command_names(self) -> list[str]:
        return self.commands.names

    async def before_turn(self, session_key: str, context: list[Message]) -> list[Message]:
        """
        Hook called once per agent turn, before the model call.

        Args:
            session_key: Session identifier.
            context: Full context for this turn.

        Returns:
            The context to send to the model.
        """
        if not self.config.enabled:
            return list(context)

        state = self.sessions.get_or_create(session_key)
        requested = state.force_recompact
        new_context, new_state = await self.engine.process(context, state)

        # compact-now issued while this turn was summarizing applies to the next one
        current = self.sessions.get_or_create(session_key)
        if current.force_recompact and not requested:
            new_state.force_recompact = True

        # Only stored once process() has fully resolved
        self.sessions.put(session_key, new_state)
        return new_context

    async def before_turn_dicts(
        self,
        session_key: str,
        messages: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """before_turn for hosts that keep OpenAI-style message dicts."""
        new_context = await self.before_turn(session_key, messages_from_dicts(messages))
        return messages_to_dicts(new_context)

    def handle_command(
        self,
        session_key: str,
        name: str,
        context: list[Message] | None = None,
    ) -> str:
        """
        Run a compaction command for a session.

        Args:
            session_key: Session identifier.
            name: Command name (context-stats or compact-now).
            context: Live context, if the host has it at hand.

        Returns:
            Short text payload for the user.
        """
        state = self.sessions.get_or_create(session_key)
        logger.debug(f"Command /{name.lstrip('/')} for session {session_key}")
        return self.commands.handle(name, state, context)

    def end_session(self, session_key: str) -> None:
        """Discard a session's compaction state."""
        self.sessions.delete(session_key)
