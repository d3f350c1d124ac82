"""Configuration loader with YAML and environment variable support.

This module provides a configuration loader that reads from ~/.config/hyperdrafter/config.yaml
and allows environment variable overrides using HYPERDRAFTER_* prefix.

Environment variables:
- HYPERDRAFTER_LLM_PROVIDER: Override LLM provider ("anthropic" or "openai")
- HYPERDRAFTER_LLM_ENDPOINT: Override LLM API endpoint
- HYPERDRAFTER_LLM_API_KEY: Override LLM API key
- HYPERDRAFTER_LLM_MODEL: Override LLM model name
- HYPERDRAFTER_ANALYSIS_QUIET_PERIOD_MS: Override debounce quiet period
- HYPERDRAFTER_ANALYSIS_FUZZY_WINDOW: Override offset correction window
"""

import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from hyperdrafter.models.config import Config, LLMConfig, check_permissions


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "hyperdrafter" / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    A missing config file is not an error: every setting has a default, and
    a missing API key is only reported when a request is actually made.

    Args:
        config_path: Path to config file. If None, uses ~/.config/hyperdrafter/config.yaml

    Returns:
        Validated Config object

    Raises:
        PermissionError: If the config file is group/world accessible
        ValueError: If config file is invalid
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        check_permissions(config_path)
        with config_path.open() as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    data = _apply_env_overrides(data)

    return Config(**data)


def settings_provider(config_path: Optional[Path] = None) -> Callable[[], LLMConfig]:
    """Build a callable returning the current LLM settings.

    The file and environment are re-read on every call so credential or
    model changes take effect on the next request.

    Args:
        config_path: Path to config file. If None, uses the default location

    Returns:
        Zero-argument callable returning an LLMConfig
    """
    def current_settings() -> LLMConfig:
        return load_config(config_path).llm

    return current_settings


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration data.

    Environment variables use the format: HYPERDRAFTER_SECTION_KEY
    For example: HYPERDRAFTER_LLM_ENDPOINT sets data['llm']['endpoint']

    Args:
        data: Base configuration dictionary from YAML

    Returns:
        Configuration dictionary with environment overrides applied
    """
    if "llm" not in data:
        data["llm"] = {}
    if "analysis" not in data:
        data["analysis"] = {}

    if env_provider := os.getenv("HYPERDRAFTER_LLM_PROVIDER"):
        data["llm"]["provider"] = env_provider

    if env_endpoint := os.getenv("HYPERDRAFTER_LLM_ENDPOINT"):
        data["llm"]["endpoint"] = env_endpoint

    if env_api_key := os.getenv("HYPERDRAFTER_LLM_API_KEY"):
        data["llm"]["api_key"] = env_api_key

    if env_model := os.getenv("HYPERDRAFTER_LLM_MODEL"):
        data["llm"]["model"] = env_model

    if env_quiet := os.getenv("HYPERDRAFTER_ANALYSIS_QUIET_PERIOD_MS"):
        try:
            data["analysis"]["quiet_period_ms"] = int(env_quiet)
        except ValueError:
            pass  # Invalid value, ignore

    if env_window := os.getenv("HYPERDRAFTER_ANALYSIS_FUZZY_WINDOW"):
        try:
            data["analysis"]["fuzzy_window"] = int(env_window)
        except ValueError:
            pass  # Invalid value, ignore

    return data
