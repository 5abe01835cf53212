"""Tests for session state caching and transcript files."""

import json
from pathlib import Path

import pytest

from compactor.compaction.types import CompactionState, Message
from compactor.session.manager import SessionStateManager
from compactor.session.transcript import load_transcript, save_transcript


# ── SessionStateManager ─────────────────────────────────────────────


class TestSessionStateManager:
    def test_get_or_create_returns_same_state(self):
        manager = SessionStateManager()
        state = manager.get_or_create("cli:1")
        assert manager.get_or_create("cli:1") is state
        assert "cli:1" in manager

    def test_sessions_are_independent(self):
        manager = SessionStateManager()
        manager.get_or_create("a").force_recompact = True
        assert manager.get_or_create("b").force_recompact is False

    def test_put_replaces(self):
        manager = SessionStateManager()
        manager.get_or_create("a")
        new_state = CompactionState(last_context_tokens=42)
        manager.put("a", new_state)
        assert manager.get_or_create("a") is new_state

    def test_lru_eviction(self):
        manager = SessionStateManager(max_sessions=2)
        manager.get_or_create("a")
        manager.get_or_create("b")
        manager.get_or_create("a")  # a is now most recent
        manager.get_or_create("c")
        assert "a" in manager
        assert "b" not in manager
        assert len(manager) == 2

    def test_delete(self):
        manager = SessionStateManager()
        manager.get_or_create("a")
        assert manager.delete("a") is True
        assert manager.delete("a") is False
        assert len(manager) == 0


# ── Transcript files ────────────────────────────────────────────────


class TestTranscript:
    def test_round_trip(self, tmp_path: Path):
        path = tmp_path / "sessions" / "chat.jsonl"
        messages = [
            Message(role="user", content="hi"),
            Message(role="assistant", content="hello"),
        ]
        save_transcript(path, messages, metadata={"source": "test"})

        first_line = json.loads(path.read_text(encoding="utf-8").splitlines()[0])
        assert first_line["_type"] == "metadata"
        assert first_line["metadata"] == {"source": "test"}
        assert load_transcript(path) == messages

    def test_no_temp_files_left(self, tmp_path: Path):
        path = tmp_path / "chat.jsonl"
        save_transcript(path, [Message(role="user", content="hi")])
        assert [p.name for p in tmp_path.iterdir()] == ["chat.jsonl"]

    def test_skips_corrupt_and_blank_lines(self, tmp_path: Path):
        path = tmp_path / "chat.jsonl"
        path.write_text(
            '{"role": "user", "content": "one"}\n'
            "not json\n"
            "\n"
            "[1, 2]\n"
            '{"role": "assistant", "content": "two"}\n',
            encoding="utf-8",
        )
        messages = load_transcript(path)
        assert [m.content for m in messages] == ["one", "two"]

    def test_too_many_corrupt_lines(self, tmp_path: Path):
        path = tmp_path / "chat.jsonl"
        path.write_text("garbage\n" * 60, encoding="utf-8")
        with pytest.raises(ValueError):
            load_transcript(path)
