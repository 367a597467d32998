"""
GitHub Actions outputs and step summary.

Writes the protocol's outputs (`committed`, `commit_sha`) to the file named
by `$GITHUB_OUTPUT` and a Markdown summary of the outcome to
`$GITHUB_STEP_SUMMARY`. Outside of Actions (variables unset) both writers
are no-ops, so the same code path runs locally.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

from autosync.core.sync.models import ExitReason, SyncResult

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    ExitReason.PUSHED: "✅ Changes pushed",
    ExitReason.NO_CHANGES: "ℹ️ No changes to commit",
    ExitReason.EXHAUSTED: "❌ Push retries exhausted",
    ExitReason.CONFLICT: "❌ Conflict with upstream history",
    ExitReason.CORRUPTION: "❌ Conflict markers in staged files",
    ExitReason.INVALID: "❌ Invalid input",
    ExitReason.FAILED: "❌ Git command failed",
    ExitReason.CANCELLED: "⚠️ Cancelled by signal",
}

MAX_SUMMARY_FILES = 50


def build_outputs(result: SyncResult) -> dict[str, str]:
    """Map a result to the action's output variables."""
    return {
        "committed": "true" if result.committed else "false",
        "commit_sha": result.commit_sha if result.committed else "",
    }


def _format_output(name: str, value: str) -> str:
    if "\n" not in value:
        return f"{name}={value}\n"
    delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


def write_outputs(result: SyncResult, path: Path | None = None) -> bool:
    """
    Append output variables to the GitHub output file.

    Args:
        result: Outcome of the run
        path: Output file (defaults to $GITHUB_OUTPUT)

    Returns:
        True if outputs were written, False if no output file is configured.
    """
    target = path or _env_path("GITHUB_OUTPUT")
    if target is None:
        return False

    with target.open("a", encoding="utf-8") as f:
        for name, value in build_outputs(result).items():
            f.write(_format_output(name, value))

    logger.debug("Wrote outputs to %s", target)
    return True


def render_summary(result: SyncResult) -> str:
    """
    Render a Markdown summary of the outcome.

    Example:
        >>> print(render_summary(result))
        ### autosync: ✅ Changes pushed
        ...
    """
    lines = [f"### autosync: {STATUS_LABELS[result.exit_reason]}", ""]

    rows: list[tuple[str, str]] = []
    if result.branch:
        rows.append(("Branch", f"`{result.branch}`"))
    if result.committed:
        rows.append(("Commit", f"`{result.commit_sha}`"))
    if result.author_name:
        rows.append(("Author", f"{result.author_name} <{result.author_email}>"))
    if result.attempts:
        rows.append(("Push attempts", str(result.attempts)))
    if result.resolved_conflicts:
        rows.append(("Stash conflicts auto-resolved", str(len(result.resolved_conflicts))))
    if result.duration_seconds is not None:
        rows.append(("Duration", f"{result.duration_seconds:.1f}s"))

    if rows:
        lines += ["| | |", "|---|---|"]
        lines += [f"| {key} | {value} |" for key, value in rows]
        lines.append("")

    if result.files:
        lines.append(f"<details><summary>{len(result.files)} files committed</summary>")
        lines.append("")
        for name in result.files[:MAX_SUMMARY_FILES]:
            lines.append(f"- `{name}`")
        if len(result.files) > MAX_SUMMARY_FILES:
            lines.append(f"- ... and {len(result.files) - MAX_SUMMARY_FILES} more")
        lines += ["", "</details>", ""]

    if not result.success and result.message:
        lines += ["```", result.message, "```", ""]

    return "\n".join(lines)


def write_step_summary(result: SyncResult, path: Path | None = None) -> bool:
    """
    Append the Markdown summary to the job's step summary.

    Returns:
        True if the summary was written, False if no summary file is configured.
    """
    target = path or _env_path("GITHUB_STEP_SUMMARY")
    if target is None:
        return False

    with target.open("a", encoding="utf-8") as f:
        f.write(render_summary(result))
        f.write("\n")
    return True


def _env_path(name: str) -> Path | None:
    value = os.environ.get(name)
    return Path(value) if value else None
