"""Per-session compaction state management."""

from collections import OrderedDict

from loguru import logger

from compactor.compaction.types import CompactionState

# Maximum number of session states to keep in memory (LRU eviction)
_MAX_CACHED_SESSIONS = 200


class SessionStateManager:
    """
    Holds one CompactionState per session.

    States live only in memory for the session lifetime. Uses an LRU cache
    to bound memory use.
    """

    def __init__(self, max_sessions: int = _MAX_CACHED_SESSIONS):
        self.max_sessions = max_sessions
        self._cache: OrderedDict[str, CompactionState] = OrderedDict()

    def get_or_create(self, key: str) -> CompactionState:
        """
        Get an existing state or create a new one.

        Args:
            key: Session key (usually channel:chat_id).

        Returns:
            The session's state.
        """
        # Check cache (and move to end for LRU)
        if key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]

        state = CompactionState()
        self.put(key, state)
        return state

    def put(self, key: str, state: CompactionState) -> None:
        """Store the state that a finished turn produced."""
        self._cache[key] = state
        self._cache.move_to_end(key)
        if len(self._cache) > self.max_sessions:
            evicted, _ = self._cache.popitem(last=False)  # Remove oldest
            logger.debug(f"Evicted compaction state for session {evicted}")

    def delete(self, key: str) -> bool:
        """
        Discard a session's state.

        Args:
            key: Session key.

        Returns:
            True if deleted, False if not found.
        """
        return self._cache.pop(key, None) is not None

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)
