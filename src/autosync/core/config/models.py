"""
Configuration data models for autosync.

These models define the structure of `.autosync.json` and
`~/.config/autosync/config.json`, with validation and type safety via Pydantic.
"""

from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_USER_NAME = "github-actions[bot]"
DEFAULT_USER_EMAIL = "41898282+github-actions[bot]@users.noreply.github.com"


class SyncConfig(BaseModel):
    """
    Inputs of one sync-commit-push run.

    Only `commit_message` has no usable default. It is left empty here so the
    precondition validator can report it by name.
    """
    path: Path = Field(
        default=Path("."),
        description="Working tree to integrate (must be a git working tree)"
    )
    commit_message: str = Field(
        default="",
        description="Message for the commit (required, non-empty)"
    )
    file_pattern: str = Field(
        default=".",
        description="Whitespace-separated pathspec globs selecting files to stage"
    )
    commit_user_name: str = Field(
        default=DEFAULT_USER_NAME,
        min_length=1,
        description="Author and committer name"
    )
    commit_user_email: str = Field(
        default=DEFAULT_USER_EMAIL,
        min_length=1,
        description="Author and committer email"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Total push attempts before giving up"
    )
    remote: str = Field(
        default="origin",
        min_length=1,
        description="Remote to fetch from and push to"
    )
    branch: Optional[str] = Field(
        default=None,
        description="Target branch (defaults to the checked-out branch)"
    )
    conflict_strategy: Literal["local", "upstream", "abort"] = Field(
        default="local",
        description="Which side wins when restoring stashed changes conflicts"
    )
    retry_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay before a push retry; doubles on each retry"
    )
    git_timeout: int = Field(
        default=120,
        ge=1,
        description="Seconds before a single git command is abandoned"
    )

    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator('file_pattern', mode='before')
    @classmethod
    def validate_file_pattern(cls, v: Union[str, list[str], None]) -> str:
        """Accept a list of globs and normalize blank input to '.'."""
        if v is None:
            return "."
        if isinstance(v, list):
            v = " ".join(str(item) for item in v)
        return v.strip() or "."

    @field_validator('branch', mode='before')
    @classmethod
    def validate_branch(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty branch as unset."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("refs/heads/"):
                v = v[len("refs/heads/"):]
        return v or None
