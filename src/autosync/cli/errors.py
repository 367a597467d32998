"""
Standardized error handling and exit codes for the autosync CLI.

This module provides consistent error messaging with actionable guidance
and one exit code per fatal protocol outcome, so CI steps can branch on it.
"""

from enum import IntEnum

from rich.console import Console

from autosync.core.sync.exceptions import (
    CorruptionGuardError,
    GitError,
    PushRaceExhausted,
    SyncConflictError,
    ValidationError,
)
from autosync.core.sync.resolver import StashConflictAborted

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for autosync."""

    SUCCESS = 0
    """Changes pushed, or nothing to commit."""

    GENERAL_ERROR = 1
    """A git command failed (authentication, network, unexpected state)."""

    USER_ERROR = 2
    """Invalid input; nothing was touched."""

    SYNC_CONFLICT = 3
    """Rebase conflicts with committed upstream history."""

    CORRUPTION_GUARD = 4
    """Conflict markers found in staged content."""

    PUSH_RACE_EXHAUSTED = 5
    """Every push attempt was rejected."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""

    SIGTERM = 143
    """Terminated by SIGTERM (job cancelled)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
    doc_url: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it
        doc_url: Optional documentation URL for more help

    Example:
        >>> print_error(
        ...     "Invalid max_retries",
        ...     reason="must be > 0, got 0",
        ...     solution="--max-retries 3",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")

    if doc_url:
        console.print(f"[dim]Docs: {doc_url}[/dim]")


OPTION_FOR_FIELD = {
    "path": "--path",
    "commit_message": "--message",
    "max_retries": "--max-retries",
    "branch": "--branch",
    "file_pattern": "--file-pattern",
    "commit_user_name": "--user-name",
    "commit_user_email": "--user-email",
    "conflict_strategy": "--conflict-strategy",
    "retry_backoff_seconds": "--retry-backoff",
}


def print_validation_error(error: ValidationError) -> None:
    """Print error for an invalid input, naming the option that sets it."""
    option = OPTION_FOR_FIELD.get(error.field)
    print_error(
        str(error),
        reason="Nothing in the working tree was changed",
        solution=f"Fix {option} (or INPUT_{error.field.upper()})" if option else None,
    )


def print_sync_conflict_error(error: SyncConflictError) -> None:
    """Print error when the rebase onto upstream conflicts with committed history."""
    print_error(
        "Local commits conflict with upstream history",
        reason="Conflicting paths: " + (", ".join(error.paths) or "unknown"),
        solution="git pull --rebase  # resolve the conflicts by hand, then re-run",
    )


def print_stash_conflict_aborted_error(error: StashConflictAborted) -> None:
    """Print error when the abort strategy refused to resolve a stash conflict."""
    print_error(
        str(error),
        reason="The stash entry was kept; conflicted files in the working tree still hold markers",
        solution="git checkout -- . && git stash pop  # then resolve by hand",
    )


def print_corruption_guard_error(error: CorruptionGuardError) -> None:
    """Print error when staged files contain conflict markers."""
    shown = ", ".join(f"{path}:{line}" for path, line in error.locations[:10])
    print_error(
        "Conflict markers found in staged files; nothing was committed",
        reason=shown,
        solution="git diff --cached --check  # remove the markers, then re-run",
    )


def print_push_race_error(error: PushRaceExhausted) -> None:
    """Print error when the retry budget ran out."""
    print_error(
        f"Push rejected on all {error.attempts} attempts",
        reason="Other jobs kept advancing the branch"
        + (f" (last: {error.last_error})" if error.last_error else ""),
        solution="--max-retries N  # with a larger budget",
    )


def print_git_error(error: GitError) -> None:
    """Print error when a git command failed."""
    print_error(
        str(error),
        reason=error.stderr or None,
    )
