"""Configuration loading from the host's JSON config file."""

import json
import os
import re
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from compactor.errors import ConfigurationError
from compactor.config.schema import Config, describe_validation_error

# Plugin entry id under plugins.entries in the host config
PLUGIN_ID = "context-compactor"


def get_config_path() -> Path:
    """Get the host config file path (overridable via COMPACTOR_HOST_CONFIG)."""
    override = os.getenv("COMPACTOR_HOST_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".openclaw" / "openclaw.json"


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    head, *rest = name.split("_")
    return head + "".join(word.capitalize() for word in rest)


def convert_keys(data: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Recursively convert dict keys from snake_case to camelCase."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def _find_entry(data: Any) -> Any:
    """Walk plugins.entries[PLUGIN_ID], returning None where the shape is wrong."""
    node = data
    for key in ("plugins", "entries", PLUGIN_ID):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def load_config(config_path: Path | None = None) -> Config:
    """
    Load compactor settings from the host config.

    Reads plugins.entries["context-compactor"]; its "config" block becomes
    Config.compaction and its "provider" block Config.provider.

    Args:
        config_path: Optional path to the host config file.

    Returns:
        Loaded Config. Compaction is None when the file or entry is missing.

    Raises:
        ConfigurationError: If the entry exists but fails validation.
    """
    path = config_path or get_config_path()

    if not path.exists():
        return Config()

    try:
        data = json.loads(path.read_text(encoding="utf-8") or "{}")
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        return Config()

    entry = _find_entry(data)
    if not isinstance(entry, dict):
        logger.debug(f"No {PLUGIN_ID} entry in {path}")
        return Config()

    payload: dict[str, Any] = {}
    if "enabled" in entry:
        payload["enabled"] = entry["enabled"]
    if entry.get("config") is not None:
        payload["compaction"] = convert_keys(entry["config"])
    if entry.get("provider") is not None:
        payload["provider"] = convert_keys(entry["provider"])

    try:
        return Config.model_validate(payload)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid {PLUGIN_ID} config in {path}: {describe_validation_error(e)}"
        ) from e
