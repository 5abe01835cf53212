"""
compactor - Proactive context compaction for local LLM agents.
"""

__version__ = "0.3.0"
__logo__ = "📦"
