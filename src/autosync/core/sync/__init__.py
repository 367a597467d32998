"""
Sync-commit-push protocol.

Integrates uncommitted changes in a working tree into a shared branch that
concurrent jobs may also be pushing to: local changes are stashed around a
rebase onto the upstream tip, matching files are staged and checked for
conflict markers, and the commit is pushed with bounded optimistic retries.

Example:
    >>> from autosync.core.config import SyncConfig
    >>> from autosync.core.sync import SyncEngine
    >>> result = SyncEngine(SyncConfig(commit_message="Update lockfile")).run()
    >>> if result.committed:
    ...     print(f"Pushed {result.commit_sha[:8]}")
"""

from autosync.core.sync.backend import VCSBackend
from autosync.core.sync.engine import SyncContext, SyncEngine
from autosync.core.sync.exceptions import (
    CorruptionGuardError,
    GitError,
    PushRaceExhausted,
    SyncConflictError,
    SyncError,
    ValidationError,
)
from autosync.core.sync.git import GitBackend
from autosync.core.sync.models import (
    ConflictSide,
    ExitReason,
    ProtocolState,
    PushResult,
    RetryBudget,
    StashHandle,
    SyncResult,
)
from autosync.core.sync.stash import StashManager

__all__ = [
    "SyncEngine",
    "SyncContext",
    "VCSBackend",
    "GitBackend",
    "StashManager",
    "SyncResult",
    "ExitReason",
    "ProtocolState",
    "PushResult",
    "ConflictSide",
    "RetryBudget",
    "StashHandle",
    "SyncError",
    "ValidationError",
    "SyncConflictError",
    "CorruptionGuardError",
    "PushRaceExhausted",
    "GitError",
]
