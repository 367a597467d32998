"""
Settings from .env files.

`AUTOSYNC_*` settings can be kept in dotenv files next to the config they
belong to:
- the user file, ~/.config/autosync/.env
- the working tree's own .env, found beside .autosync.json

The working tree is the one being synced (`--path` / INPUT_PATH), not the
directory the command was started from. Variables exported in the process
environment always win over both files.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

ENV_FILE_NAME = ".env"


def read_env_file(path: Path) -> dict[str, str]:
    """Parse a dotenv file, skipping keys without a value. Missing files are empty."""
    if not path.is_file():
        return {}
    values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    logger.debug("Read %d variables from %s", len(values), path)
    return values


def layered_environ(
    project_dir: Path | None,
    user_env_path: Path,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Merge dotenv files under the process environment.

    Precedence (highest first): `environ` > <project_dir>/.env > user .env

    Args:
        project_dir: Working tree whose .env is read, or None to skip it
        user_env_path: Path of the user-level .env file
        environ: Process environment (defaults to os.environ)

    Returns:
        The merged mapping. `os.environ` is not modified.
    """
    merged = read_env_file(user_env_path)
    if project_dir is not None:
        merged.update(read_env_file(project_dir / ENV_FILE_NAME))
    merged.update(os.environ if environ is None else environ)
    return merged
