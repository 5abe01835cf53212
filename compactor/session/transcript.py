"""JSONL transcript files, one chat message per line."""

import json
import os
import secrets
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from compactor.compaction.types import Message

# Give up on files that are mostly garbage
_MAX_CORRUPT_LINES = 50


def load_transcript(path: Path) -> list[Message]:
    """
    Load a transcript with robust error handling.

    Lines are OpenAI-style chat dicts. A leading ``{"_type": "metadata"}``
    line is skipped, as are lines that fail to parse.

    Args:
        path: Transcript file.

    Returns:
        Messages in file order.

    Raises:
        ValueError: If the file has too many corrupt lines to trust.
    """
    messages: list[Message] = []
    corrupt_lines = 0

    with open(path, encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                corrupt_lines += 1
                if corrupt_lines <= 3:
                    logger.warning(f"Skipped corrupt line {line_num} in {path}")
                if corrupt_lines > _MAX_CORRUPT_LINES:
                    raise ValueError(f"Too many corrupt lines in {path}")
                continue

            if not isinstance(data, dict) or data.get("_type") == "metadata":
                continue
            messages.append(Message.from_dict(data))

    if corrupt_lines:
        logger.warning(f"{path}: loaded with {corrupt_lines} corrupt line(s) skipped")

    return messages


def save_transcript(
    path: Path,
    messages: list[Message],
    metadata: dict[str, Any] | None = None,
) -> None:
    """Save a transcript atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)

    # Write to temp file first, then atomic rename
    tmp_path = path.with_suffix(f".tmp.{secrets.token_hex(4)}")
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="\n") as f:
            metadata_line = {
                "_type": "metadata",
                "updated_at": datetime.now().isoformat(),
                "metadata": metadata or {},
            }
            f.write(json.dumps(metadata_line) + "\n")

            for msg in messages:
                f.write(json.dumps(msg.to_dict()) + "\n")

        os.replace(str(tmp_path), str(path))
    except Exception:
        # Clean up temp file on failure
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise
