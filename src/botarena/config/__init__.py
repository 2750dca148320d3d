"""
Configuration management for botarena.

Supports multiple configuration sources in order of priority:
1. Environment variables (highest priority)
2. Arena .env file (<config-dir>/.env)
3. Global config file (~/.botarena/config.yml)
4. Default values (lowest priority)
"""

from .env_loader import (
    global_config_path,
    load_env_file,
    load_global_config,
    load_project_config,
)
from .getters import (
    DEFAULT_BASE_PORT,
    DEFAULT_FPR_THRESHOLD,
    DEFAULT_LLM_MODEL,
    DEFAULT_ROUNDS,
    DEFAULT_SESSIONS_PER_PROFILE,
    get_base_port,
    get_config,
    get_fpr_threshold,
    get_llm_api_key,
    get_llm_base_url,
    get_llm_model,
    get_rounds,
    get_sessions_per_profile,
    is_verbose,
)

__all__ = [
    # env_loader
    "global_config_path",
    "load_env_file",
    "load_global_config",
    "load_project_config",
    # getters
    "DEFAULT_BASE_PORT",
    "DEFAULT_FPR_THRESHOLD",
    "DEFAULT_LLM_MODEL",
    "DEFAULT_ROUNDS",
    "DEFAULT_SESSIONS_PER_PROFILE",
    "get_base_port",
    "get_config",
    "get_fpr_threshold",
    "get_llm_api_key",
    "get_llm_base_url",
    "get_llm_model",
    "get_rounds",
    "get_sessions_per_profile",
    "is_verbose",
]
