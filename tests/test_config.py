"""Tests for configuration schema, loading and context-window presets."""

import json
from pathlib import Path

import pytest

from compactor.errors import ConfigurationError
from compactor.config.loader import (
    PLUGIN_ID,
    camel_to_snake,
    convert_keys,
    convert_to_camel,
    get_config_path,
    load_config,
    snake_to_camel,
)
from compactor.config.schema import CompactionConfig, Config, validate_compaction_config
from compactor.config.windows import (
    MIN_MAX_TOKENS,
    detect_context_window,
    suggest_compaction_config,
)


VALID = {
    "max_tokens": 16000,
    "keep_recent_tokens": 4000,
    "summary_max_tokens": 2000,
    "chars_per_token": 4,
}


def write_host_config(tmp_path: Path, entry: dict) -> Path:
    config_file = tmp_path / "openclaw.json"
    config_file.write_text(json.dumps({
        "agents": {"defaults": {"model": {"primary": "ollama/qwen2.5"}}},
        "plugins": {"entries": {PLUGIN_ID: entry}},
    }))
    return config_file


# ── Key conversion ──────────────────────────────────────────────────


class TestKeyConversion:
    def test_camel_to_snake(self):
        assert camel_to_snake("keepRecentTokens") == "keep_recent_tokens"
        assert camel_to_snake("enabled") == "enabled"
        assert camel_to_snake("api_key") == "api_key"
        assert camel_to_snake("") == ""

    def test_snake_to_camel(self):
        assert snake_to_camel("summary_max_tokens") == "summaryMaxTokens"
        assert snake_to_camel("model") == "model"

    def test_nested(self):
        data = {"config": {"maxTokens": 1}, "items": [{"charsPerToken": 4}]}
        assert convert_keys(data) == {"config": {"max_tokens": 1}, "items": [{"chars_per_token": 4}]}
        assert convert_to_camel(convert_keys(data)) == data

    def test_non_dict(self):
        assert convert_keys(42) == 42
        assert convert_keys(None) is None


# ── Schema validation ───────────────────────────────────────────────


class TestCompactionConfig:
    def test_defaults_for_optional_fields(self):
        config = CompactionConfig(**VALID)
        assert config.message_overhead_tokens == 0
        assert config.max_no_progress_compactions == 2
        assert config.stats_history_limit == 50

    @pytest.mark.parametrize("field", ["max_tokens", "keep_recent_tokens", "summary_max_tokens", "chars_per_token"])
    def test_required_fields(self, field):
        data = {k: v for k, v in VALID.items() if k != field}
        with pytest.raises(ConfigurationError, match=field):
            validate_compaction_config(data)

    @pytest.mark.parametrize("field", ["max_tokens", "keep_recent_tokens", "summary_max_tokens", "chars_per_token"])
    def test_positive_values(self, field):
        with pytest.raises(ConfigurationError):
            validate_compaction_config({**VALID, field: 0})

    def test_recent_must_be_below_max(self):
        with pytest.raises(ConfigurationError, match="keep_recent_tokens"):
            validate_compaction_config({**VALID, "keep_recent_tokens": 16000})

    def test_tight_budget_is_allowed(self):
        config = validate_compaction_config({**VALID, "summary_max_tokens": 12000})
        assert config.summary_max_tokens == 12000

    def test_none_rejected(self):
        with pytest.raises(ConfigurationError):
            validate_compaction_config(None)

    def test_instance_passthrough(self):
        config = CompactionConfig(**VALID)
        assert validate_compaction_config(config) is config


class TestConfig:
    def test_require_compaction(self):
        with pytest.raises(ConfigurationError):
            Config().require_compaction()
        assert Config(compaction=VALID).require_compaction().max_tokens == 16000

    def test_provider_defaults(self):
        config = Config()
        assert config.enabled is True
        assert config.provider.model.startswith("ollama/")


# ── load_config ─────────────────────────────────────────────────────


class TestLoadConfig:
    def test_missing_file(self, tmp_path: Path):
        config = load_config(tmp_path / "nonexistent.json")
        assert config.compaction is None

    def test_invalid_json(self, tmp_path: Path):
        config_file = tmp_path / "openclaw.json"
        config_file.write_text("not json{{{")
        assert load_config(config_file).compaction is None

    def test_empty_file(self, tmp_path: Path):
        config_file = tmp_path / "openclaw.json"
        config_file.write_text("")
        assert load_config(config_file).compaction is None

    def test_missing_entry(self, tmp_path: Path):
        config_file = tmp_path / "openclaw.json"
        config_file.write_text(json.dumps({"plugins": {"entries": {}}}))
        assert load_config(config_file).compaction is None

    @pytest.mark.parametrize("document", [
        {"plugins": {"entries": None}},
        {"plugins": None},
        {"plugins": []},
        {"plugins": {"entries": "context-compactor"}},
        ["plugins"],
    ])
    def test_malformed_entries_block(self, tmp_path: Path, document):
        config_file = tmp_path / "openclaw.json"
        config_file.write_text(json.dumps(document))
        assert load_config(config_file).compaction is None

    def test_camel_case_entry(self, tmp_path: Path):
        config_file = write_host_config(tmp_path, {
            "enabled": True,
            "config": {
                "maxTokens": 32000,
                "keepRecentTokens": 8000,
                "summaryMaxTokens": 4000,
                "charsPerToken": 3.5,
            },
            "provider": {"model": "ollama/mistral", "apiBase": "http://127.0.0.1:11434"},
        })
        config = load_config(config_file)
        assert config.enabled is True
        assert config.compaction.max_tokens == 32000
        assert config.compaction.chars_per_token == 3.5
        assert config.provider.model == "ollama/mistral"
        assert config.provider.api_base == "http://127.0.0.1:11434"

    def test_disabled_entry(self, tmp_path: Path):
        config_file = write_host_config(tmp_path, {"enabled": False, "config": {
            "maxTokens": 16000, "keepRecentTokens": 4000, "summaryMaxTokens": 2000, "charsPerToken": 4,
        }})
        assert load_config(config_file).enabled is False

    def test_invalid_entry_raises(self, tmp_path: Path):
        config_file = write_host_config(tmp_path, {"config": {"maxTokens": -5}})
        with pytest.raises(ConfigurationError):
            load_config(config_file)

    def test_config_path_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("COMPACTOR_HOST_CONFIG", str(tmp_path / "host.json"))
        assert get_config_path() == tmp_path / "host.json"


# ── Context-window presets ──────────────────────────────────────────


class TestContextWindows:
    def test_detect_known(self):
        assert detect_context_window("anthropic/claude-sonnet-4") == 200_000
        assert detect_context_window("openai/gpt-3.5-turbo") == 16_000
        assert detect_context_window("ollama/Qwen2.5:7b") == 32_000

    def test_detect_unknown(self):
        assert detect_context_window("acme/tiny") is None
        assert detect_context_window(None) is None

    def test_suggest_from_window(self):
        config = suggest_compaction_config(32_000)
        assert config.max_tokens == 25_600
        assert config.keep_recent_tokens == 6_400
        assert config.summary_max_tokens == 3_200
        assert config.chars_per_token == 4

    def test_suggest_enforces_minimum(self):
        config = suggest_compaction_config(8_000)
        assert config.max_tokens == MIN_MAX_TOKENS
        assert config.keep_recent_tokens == 4_000
        assert config.summary_max_tokens == 2_000

    def test_suggest_without_window(self):
        assert suggest_compaction_config().max_tokens == MIN_MAX_TOKENS
