"""
Configuration loading for Stencil.
"""

from __future__ import annotations

from .load import load_config
from .model import CacheConfig, ConfigError, EngineConfig, TranslationConfig, WarmupConfig
from .paths import CONFIG_FILE, config_path

__all__ = [
    "EngineConfig",
    "CacheConfig",
    "WarmupConfig",
    "TranslationConfig",
    "ConfigError",
    "load_config",
    "config_path",
    "CONFIG_FILE",
]
