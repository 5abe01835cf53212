"""Session state and transcript handling."""

from compactor.session.manager import SessionStateManager
from compactor.session.transcript import load_transcript, save_transcript

__all__ = ["SessionStateManager", "load_transcript", "save_transcript"]
