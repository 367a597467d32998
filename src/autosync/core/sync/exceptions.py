"""
Exceptions raised by the sync protocol.

Exception Hierarchy:
    SyncError (base)
    ├── ValidationError (bad or missing input, raised before any mutation)
    ├── SyncConflictError (rebase conflicts with committed upstream history)
    ├── CorruptionGuardError (conflict markers found in staged content)
    └── PushRaceExhausted (retry budget consumed without a successful push)

    GitError (a VCS command failed for a reason the protocol cannot handle)

A clean no-op (nothing to commit) is not an error. It is reported through
`SyncResult` with `committed=False`.

Example:
    >>> from autosync.core.sync.exceptions import PushRaceExhausted
    >>> try:
    ...     raise PushRaceExhausted(attempts=3)
    ... except PushRaceExhausted as e:
    ...     print(e)
    Push rejected 3 times; retry budget exhausted
"""

from __future__ import annotations


class SyncError(Exception):
    """
    Base exception for all fatal protocol outcomes.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class ValidationError(SyncError):
    """
    Raised when a caller-supplied input is invalid.

    Detected pre-flight. Nothing in the working tree has been touched when
    this is raised.

    Attributes:
        field: Name of the offending input (e.g. "max_retries")
        value: The rejected value, if any
    """

    def __init__(self, field: str, message: str, value: object = None) -> None:
        super().__init__(f"Invalid {field}: {message}", field=field, value=value)
        self.field = field
        self.value = value


class SyncConflictError(SyncError):
    """
    Raised when rebasing onto the upstream tip conflicts with committed history.

    Picking a side on committed history is unsafe, so this is never resolved
    automatically. The rebase has already been aborted when this is raised.

    Attributes:
        paths: Paths that conflicted during the rebase
        upstream: The upstream ref the rebase targeted
    """

    def __init__(self, paths: list[str], upstream: str = "") -> None:
        listed = ", ".join(paths) if paths else "unknown paths"
        target = f" onto {upstream}" if upstream else ""
        super().__init__(
            f"Rebase{target} conflicts with committed history: {listed}",
            paths=paths,
            upstream=upstream,
        )
        self.paths = list(paths)
        self.upstream = upstream


class CorruptionGuardError(SyncError):
    """
    Raised when staged files contain conflict markers.

    Indicates an incomplete merge resolution somewhere before the commit.
    Always stops the pipeline; the content is never committed.

    Attributes:
        locations: List of (path, line_number) pairs where markers were found
    """

    def __init__(self, locations: list[tuple[str, int]]) -> None:
        shown = ", ".join(f"{path}:{line}" for path, line in locations[:10])
        if len(locations) > 10:
            shown += f" (+{len(locations) - 10} more)"
        super().__init__(
            f"Conflict markers found in staged content: {shown}",
            locations=locations,
        )
        self.locations = list(locations)

    @property
    def paths(self) -> list[str]:
        """Distinct paths containing markers, in order of first appearance."""
        return list(dict.fromkeys(path for path, _ in self.locations))


class PushRaceExhausted(SyncError):
    """
    Raised when every push attempt in the retry budget was rejected.

    Attributes:
        attempts: Number of push attempts made
        last_error: Detail from the final failed cycle, if any
    """

    def __init__(self, attempts: int, last_error: str = "") -> None:
        message = f"Push rejected {attempts} times; retry budget exhausted"
        if last_error:
            message += f" ({last_error})"
        super().__init__(message, attempts=attempts, last_error=last_error)
        self.attempts = attempts
        self.last_error = last_error


class GitError(Exception):
    """Exception raised when a git operation fails."""

    def __init__(self, message: str, command: list[str] | None = None, stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.stderr = stderr
