"""
Configuration models and loading.

This module provides the Pydantic model for autosync configuration
with multi-layer merging: defaults < user < project < env vars < overrides.
"""

from .loader import (
    build_config,
    get_project_config_path,
    get_user_config_path,
    get_xdg_config_home,
    load_config,
)
from .models import DEFAULT_USER_EMAIL, DEFAULT_USER_NAME, SyncConfig

__all__ = [
    # Models
    "DEFAULT_USER_EMAIL",
    "DEFAULT_USER_NAME",
    "SyncConfig",
    # Loader functions
    "build_config",
    "get_project_config_path",
    "get_user_config_path",
    "get_xdg_config_home",
    "load_config",
]
