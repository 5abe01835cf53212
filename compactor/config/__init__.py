"""Configuration module for compactor."""

from compactor.config.loader import load_config, get_config_path
from compactor.config.schema import CompactionConfig, Config, ProviderConfig

__all__ = ["CompactionConfig", "Config", "ProviderConfig", "load_config", "get_config_path"]
