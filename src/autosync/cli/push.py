"""
Autosync CLI - push and check commands.

`autosync push` runs the sync-commit-push protocol on a working tree.
Every option can also be supplied through the GitHub Actions input
variable of the same name (INPUT_COMMIT_MESSAGE, INPUT_MAX_RETRIES, ...),
so the command can back a composite action without any argument plumbing.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console

from autosync.cli.errors import (
    ExitCode,
    print_corruption_guard_error,
    print_git_error,
    print_push_race_error,
    print_stash_conflict_aborted_error,
    print_sync_conflict_error,
    print_validation_error,
)
from autosync.core.config import SyncConfig, load_config
from autosync.core.outputs import write_outputs, write_step_summary
from autosync.core.sync import (
    CorruptionGuardError,
    ExitReason,
    GitBackend,
    GitError,
    PushRaceExhausted,
    SyncConflictError,
    SyncEngine,
    SyncResult,
    ValidationError,
)
from autosync.core.sync.interrupt import InterruptHandler
from autosync.core.sync.resolver import StashConflictAborted
from autosync.core.sync.validator import parse_max_retries, validate_inputs, validate_work_tree

console = Console()


def _given(value: Optional[str]) -> Optional[str]:
    """Treat empty strings (unset action inputs) as not given."""
    if value is None or not value.strip():
        return None
    return value


def _collect_overrides(
    *,
    path: Optional[str],
    message: Optional[str],
    file_pattern: Optional[str],
    user_name: Optional[str],
    user_email: Optional[str],
    max_retries: Optional[str],
    remote: Optional[str],
    branch: Optional[str],
    conflict_strategy: Optional[str],
    retry_backoff: Optional[float],
) -> dict[str, Any]:
    raw_retries = _given(max_retries)
    return {
        "path": _given(path),
        "commit_message": message,
        "file_pattern": _given(file_pattern),
        "commit_user_name": _given(user_name),
        "commit_user_email": _given(user_email),
        "max_retries": parse_max_retries(raw_retries) if raw_retries is not None else None,
        "remote": _given(remote),
        "branch": _given(branch),
        "conflict_strategy": _given(conflict_strategy),
        "retry_backoff_seconds": retry_backoff,
    }


def _load(overrides: dict[str, Any]) -> SyncConfig:
    project_dir = Path(overrides["path"] or ".")
    return load_config(project_dir if project_dir.is_dir() else None, overrides)


def _failure(
    reason: ExitReason,
    error: BaseException,
    config: Optional[SyncConfig],
    engine: Optional[SyncEngine],
    started_at: datetime,
    message: Optional[str] = None,
) -> SyncResult:
    ctx = engine.context if engine else None
    return SyncResult(
        committed=False,
        exit_reason=reason,
        branch=ctx.branch if ctx else "",
        attempts=ctx.budget.used if ctx else 0,
        resolved_conflicts=list(ctx.stash.resolved_conflicts) if ctx else [],
        author_name=config.commit_user_name if config else "",
        author_email=config.commit_user_email if config else "",
        message=message or str(error),
        started_at=started_at,
        completed_at=datetime.now(),
    )


def _report(result: SyncResult) -> None:
    write_outputs(result)
    write_step_summary(result)

    if result.exit_reason == ExitReason.PUSHED:
        console.print(f"[green]✓[/green] {result.summary()}")
        for name in result.files:
            console.print(f"  [dim]{name}[/dim]")
    elif result.exit_reason == ExitReason.NO_CHANGES:
        console.print("[blue]No changes to commit[/blue]")


def push(
    message: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        envvar="INPUT_COMMIT_MESSAGE",
        help="Commit message (required)",
    ),
    path: Optional[str] = typer.Option(
        None,
        "--path",
        "-C",
        envvar="INPUT_PATH",
        help="Working tree to integrate [default: .]",
    ),
    file_pattern: Optional[str] = typer.Option(
        None,
        "--file-pattern",
        "-p",
        envvar="INPUT_FILE_PATTERN",
        help="Whitespace-separated globs of files to commit [default: .]",
    ),
    user_name: Optional[str] = typer.Option(
        None,
        "--user-name",
        envvar="INPUT_COMMIT_USER_NAME",
        help="Commit author name [default: github-actions[bot]]",
    ),
    user_email: Optional[str] = typer.Option(
        None,
        "--user-email",
        envvar="INPUT_COMMIT_USER_EMAIL",
        help="Commit author email [default: the github-actions bot address]",
    ),
    max_retries: Optional[str] = typer.Option(
        None,
        "--max-retries",
        "-r",
        envvar="INPUT_MAX_RETRIES",
        help="Total push attempts before giving up [default: 3]",
    ),
    remote: Optional[str] = typer.Option(
        None,
        "--remote",
        envvar="INPUT_REMOTE",
        help="Remote to sync with [default: origin]",
    ),
    branch: Optional[str] = typer.Option(
        None,
        "--branch",
        "-b",
        envvar="INPUT_BRANCH",
        help="Branch to push to [default: the checked-out branch]",
    ),
    conflict_strategy: Optional[str] = typer.Option(
        None,
        "--conflict-strategy",
        envvar="INPUT_CONFLICT_STRATEGY",
        help="Who wins a stash-restore conflict: local, upstream or abort [default: local]",
    ),
    retry_backoff: Optional[float] = typer.Option(
        None,
        "--retry-backoff",
        envvar="INPUT_RETRY_BACKOFF_SECONDS",
        help="Base delay in seconds between push retries [default: 1.0]",
    ),
) -> None:
    """
    Commit local changes and push them to a shared branch.

    Stashes local changes, rebases onto the upstream branch, restores the
    stash (local changes win conflicts by default), stages matching files,
    refuses to commit conflict markers, then pushes, retrying with a fresh
    rebase whenever another job pushed first.

    Examples:
        autosync push -m "Update generated docs"
        autosync push -m "Bump lockfile" -p "poetry.lock pyproject.toml"
        autosync push -m "Nightly data" --max-retries 5 --branch data
    """
    started_at = datetime.now()
    config: Optional[SyncConfig] = None
    engine: Optional[SyncEngine] = None

    try:
        overrides = _collect_overrides(
            path=path,
            message=message,
            file_pattern=file_pattern,
            user_name=user_name,
            user_email=user_email,
            max_retries=max_retries,
            remote=remote,
            branch=branch,
            conflict_strategy=conflict_strategy,
            retry_backoff=retry_backoff,
        )
        config = _load(overrides)
        engine = SyncEngine(config)

        with InterruptHandler():
            result = engine.run()

    except ValidationError as e:
        _report(_failure(ExitReason.INVALID, e, config, engine, started_at))
        print_validation_error(e)
        raise typer.Exit(ExitCode.USER_ERROR)
    except SyncConflictError as e:
        _report(_failure(ExitReason.CONFLICT, e, config, engine, started_at))
        print_sync_conflict_error(e)
        raise typer.Exit(ExitCode.SYNC_CONFLICT)
    except StashConflictAborted as e:
        _report(_failure(ExitReason.CONFLICT, e, config, engine, started_at))
        print_stash_conflict_aborted_error(e)
        raise typer.Exit(ExitCode.SYNC_CONFLICT)
    except CorruptionGuardError as e:
        _report(_failure(ExitReason.CORRUPTION, e, config, engine, started_at))
        print_corruption_guard_error(e)
        raise typer.Exit(ExitCode.CORRUPTION_GUARD)
    except PushRaceExhausted as e:
        _report(_failure(ExitReason.EXHAUSTED, e, config, engine, started_at))
        print_push_race_error(e)
        raise typer.Exit(ExitCode.PUSH_RACE_EXHAUSTED)
    except GitError as e:
        _report(_failure(ExitReason.FAILED, e, config, engine, started_at))
        print_git_error(e)
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except SystemExit as e:
        note = f"Interrupted, exiting with status {e.code}; the working tree was restored"
        _report(_failure(ExitReason.CANCELLED, e, config, engine, started_at, note))
        raise

    _report(result)


def check(
    message: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        envvar="INPUT_COMMIT_MESSAGE",
        help="Commit message to validate",
    ),
    path: Optional[str] = typer.Option(
        None,
        "--path",
        "-C",
        envvar="INPUT_PATH",
        help="Working tree to check [default: .]",
    ),
    max_retries: Optional[str] = typer.Option(
        None,
        "--max-retries",
        "-r",
        envvar="INPUT_MAX_RETRIES",
        help="Retry budget to validate [default: 3]",
    ),
    branch: Optional[str] = typer.Option(
        None,
        "--branch",
        "-b",
        envvar="INPUT_BRANCH",
        help="Branch to push to [default: the checked-out branch]",
    ),
) -> None:
    """
    Validate inputs without touching the working tree.

    Examples:
        autosync check -m "Update docs"
        autosync check -C ./site -m "Rebuild" --max-retries 5
    """
    try:
        config = _load(
            {
                "path": _given(path),
                "commit_message": message,
                "max_retries": parse_max_retries(max_retries) if _given(max_retries) else None,
                "branch": _given(branch),
            }
        )
        inputs = validate_inputs(config.path, config.commit_message, config.max_retries)
        backend = GitBackend(inputs.path, timeout=config.git_timeout)
        target = validate_work_tree(backend, config.branch)
    except ValidationError as e:
        print_validation_error(e)
        raise typer.Exit(ExitCode.USER_ERROR)

    console.print(
        f"[green]✓[/green] Ready to push {inputs.path} to "
        f"{config.remote}/{target} (up to {inputs.max_retries} attempts)"
    )


__all__ = ["push", "check"]
