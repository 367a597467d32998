"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < user config < project config < env vars < explicit overrides

Explicit overrides are the values a caller passed directly (CLI options or
GitHub Actions inputs).
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from autosync.core.sync.exceptions import ValidationError

from .env import ENV_FILE_NAME, layered_environ
from .models import SyncConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = ".autosync.json"
ENV_PREFIX = "AUTOSYNC_"


def get_xdg_config_home() -> Path:
    """
    Get XDG config home directory.

    Returns:
        Path to config directory (defaults to ~/.config)
    """
    if xdg_home := os.environ.get("XDG_CONFIG_HOME"):
        return Path(xdg_home)
    return Path.home() / ".config"


def get_user_config_path() -> Path:
    """
    Get path to user configuration file.

    Returns:
        Path to ~/.config/autosync/config.json (or XDG equivalent)
    """
    return get_xdg_config_home() / "autosync" / "config.json"


def get_user_env_path() -> Path:
    """Get path to the user-level .env file (~/.config/autosync/.env)."""
    return get_xdg_config_home() / "autosync" / ENV_FILE_NAME


def get_project_config_path(project_dir: Path | None = None) -> Path:
    """
    Get path to project configuration file.

    Args:
        project_dir: Working tree to look in (defaults to current directory)

    Returns:
        Path to .autosync.json in the working tree
    """
    if project_dir is None:
        project_dir = Path.cwd()
    return project_dir / PROJECT_CONFIG_NAME


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open() as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            logger.warning("Ignoring config at %s: top level is not an object", path)
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def apply_env_overrides(
    config_dict: dict[str, Any],
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """
    Apply AUTOSYNC_* environment variable overrides to configuration.

    Every config field can be overridden by its upper-cased name with the
    AUTOSYNC_ prefix, e.g. AUTOSYNC_MAX_RETRIES or AUTOSYNC_FILE_PATTERN.
    Values are passed through as strings; the model validates them.

    Args:
        config_dict: Configuration dictionary to override
        environ: Variables to read (defaults to os.environ)

    Returns:
        Configuration dictionary with env var overrides applied
    """
    if environ is None:
        environ = os.environ
    result = config_dict.copy()

    for name in SyncConfig.model_fields:
        value = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if value is not None and value != "":
            result[name] = value

    return result


def build_config(data: dict[str, Any]) -> SyncConfig:
    """
    Validate a merged configuration dictionary.

    Raises:
        ValidationError: Naming the first invalid field.
    """
    try:
        return SyncConfig(**data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "config"
        raise ValidationError(field, first.get("msg", str(e)), first.get("input")) from e


def load_config(
    project_dir: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> SyncConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Explicit overrides (CLI options / action inputs)
        2. Environment variables (AUTOSYNC_*), then <project_dir>/.env, then
           the user .env
        3. Project config (<project_dir>/.autosync.json)
        4. User config (~/.config/autosync/config.json)
        5. Model defaults

    Overrides whose value is None are treated as "not given".

    Args:
        project_dir: Working tree to load .autosync.json from (defaults to cwd)
        overrides: Values supplied directly by the caller

    Returns:
        Validated SyncConfig instance

    Raises:
        ValidationError: If the merged config fails validation

    Example:
        >>> config = load_config(Path("."), {"commit_message": "Update docs"})
        >>> config.max_retries
        3
    """
    merged: dict[str, Any] = {}

    if user_config := load_json_file(get_user_config_path()):
        merged.update(user_config)

    project_config_path = get_project_config_path(project_dir)
    if project_config := load_json_file(project_config_path):
        merged.update(project_config)

    environ = layered_environ(project_config_path.parent, get_user_env_path())
    merged = apply_env_overrides(merged, environ)

    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    if project_dir is not None and "path" not in merged:
        merged["path"] = project_dir

    return build_config(merged)
