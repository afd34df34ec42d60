"""Configuration loading and schema.

- YAML-first configuration under configs/*.yaml
- Strict ${ENV_VAR} expansion (missing/empty env vars are errors)
"""

from __future__ import annotations

from aingel.core.errors import ConfigError

from .loader import DEFAULT_CONFIG_PATH, load_config, load_raw_config
from .model import AppConfig, LlmConfig, SessionConfig, ToolsConfig

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "AppConfig",
    "ConfigError",
    "LlmConfig",
    "SessionConfig",
    "ToolsConfig",
    "load_config",
    "load_raw_config",
]
