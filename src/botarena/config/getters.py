"""Configuration getter functions."""

import logging
import os
from pathlib import Path
from typing import Any

from .env_loader import load_global_config, load_project_config

logger = logging.getLogger(__name__)

DEFAULT_LLM_MODEL = "claude-sonnet-4-5"
DEFAULT_BASE_PORT = 3000
DEFAULT_SESSIONS_PER_PROFILE = 3
DEFAULT_ROUNDS = 5
DEFAULT_FPR_THRESHOLD = 0.05


def get_config(key: str, config_dir: Path | None = None, default: Any = None) -> Any:
    """
    Get configuration value with priority:
    1. Environment variable
    2. Arena .env file (<config_dir>/.env)
    3. Global config file (~/.botarena/config.yml)
    4. Default value

    Args:
        key: Configuration key
        config_dir: Optional arena config directory
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    env_value = os.environ.get(key)
    if env_value:
        return env_value

    project_config = load_project_config(config_dir)
    if key in project_config:
        return project_config[key]

    global_config = load_global_config()
    if key in global_config:
        return global_config[key]

    return default


def _typed(key: str, cast: type, config_dir: Path | None, default: Any) -> Any:
    value = get_config(key, config_dir, default)
    try:
        return cast(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid value %r for %s; using %r", value, key, default)
        return default


def get_llm_api_key(config_dir: Path | None = None) -> str | None:
    """Get the LLM API key, falling back to ANTHROPIC_API_KEY."""
    return get_config("BOTARENA_LLM_API_KEY", config_dir) or get_config(
        "ANTHROPIC_API_KEY", config_dir
    )


def get_llm_model(config_dir: Path | None = None) -> str:
    return get_config("BOTARENA_LLM_MODEL", config_dir, default=DEFAULT_LLM_MODEL)


def get_llm_base_url(config_dir: Path | None = None) -> str | None:
    return get_config("BOTARENA_LLM_BASE_URL", config_dir)


def get_base_port(config_dir: Path | None = None) -> int:
    return _typed("BOTARENA_BASE_PORT", int, config_dir, DEFAULT_BASE_PORT)


def get_sessions_per_profile(config_dir: Path | None = None) -> int:
    return _typed(
        "BOTARENA_SESSIONS_PER_PROFILE", int, config_dir, DEFAULT_SESSIONS_PER_PROFILE
    )


def get_rounds(config_dir: Path | None = None) -> int:
    return _typed("BOTARENA_ROUNDS", int, config_dir, DEFAULT_ROUNDS)


def get_fpr_threshold(config_dir: Path | None = None) -> float:
    return _typed("BOTARENA_FPR_THRESHOLD", float, config_dir, DEFAULT_FPR_THRESHOLD)


def is_verbose(config_dir: Path | None = None) -> bool:
    """True when BOTARENA_VERBOSE is set to a truthy value."""
    value = get_config("BOTARENA_VERBOSE", config_dir, default="")
    return str(value).strip().lower() in {"1", "true", "yes", "on"}
