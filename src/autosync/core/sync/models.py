"""
Data models for the sync protocol.

Defines the protocol states, the stash handle, push outcomes, the retry
budget and the final result reported to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, Field


class ProtocolState(str, Enum):
    """Where the engine is in the sync-commit-push protocol."""

    VALIDATED = "validated"
    STASHED = "stashed"
    SYNCED = "synced"
    RESTORED = "restored"
    STAGE_CHECKED = "stage_checked"
    COMMITTED = "committed"
    PUSH_ATTEMPTED = "push_attempted"
    PUSHED = "pushed"
    PUSH_REJECTED = "push_rejected"
    EXHAUSTED = "exhausted"
    NO_CHANGES = "no_changes"
    FAILED = "failed"


class ExitReason(str, Enum):
    """Why the protocol stopped."""

    PUSHED = "pushed"
    NO_CHANGES = "no_changes"
    EXHAUSTED = "exhausted"
    CONFLICT = "conflict"
    CORRUPTION = "corruption"
    INVALID = "invalid"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_success(self) -> bool:
        return self in (ExitReason.PUSHED, ExitReason.NO_CHANGES)


class PushResult(str, Enum):
    """Outcome of one attempt to publish HEAD to the upstream branch."""

    PUSHED = "pushed"
    REJECTED = "rejected"


class ConflictSide(str, Enum):
    """Which version of a conflicted path wins when a stash is reapplied."""

    LOCAL = "local"
    """The stashed (local, newer) version."""

    UPSTREAM = "upstream"
    """The version at HEAD after the upstream rebase."""


@dataclass
class StashHandle:
    """
    Handle to a snapshot of uncommitted changes.

    The clean sentinel (`StashHandle.CLEAN`) has no ref and means the tree
    was clean when the snapshot was requested. A real handle records the
    stash commit SHA so the matching entry can be dropped even when other
    stash entries exist.

    Attributes:
        ref: SHA of the stash commit, or None for the clean sentinel
        message: Message the stash entry was created with
        consumed: True once the stash was restored or discarded
    """

    ref: str | None = None
    message: str = ""
    consumed: bool = False

    CLEAN: ClassVar[StashHandle]

    @property
    def is_clean(self) -> bool:
        return self.ref is None

    @property
    def is_live(self) -> bool:
        """True while a real stash entry still needs to be resolved."""
        return not self.is_clean and not self.consumed


StashHandle.CLEAN = StashHandle()


@dataclass
class RetryBudget:
    """
    Bounded counter of push attempts.

    `max_retries=N` allows N push attempts in total. Each attempt consumes one
    unit; the budget is exhausted once all units are spent.

    Attributes:
        max_retries: Total attempts allowed (positive)
        used: Attempts consumed so far
    """

    max_retries: int
    used: int = 0

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")

    @property
    def remaining(self) -> int:
        return self.max_retries - self.used

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def consume(self) -> int:
        """
        Consume one attempt.

        Returns:
            The 1-based number of the attempt just consumed.

        Raises:
            RuntimeError: If the budget is already exhausted.
        """
        if self.exhausted:
            raise RuntimeError("Retry budget already exhausted")
        self.used += 1
        return self.used


@dataclass
class StagedChangeSet:
    """Files staged for commit, relative to the repository root."""

    files: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.files


class SyncResult(BaseModel):
    """
    Result of one run of the sync protocol.

    Provides the outputs consumed by CI (`committed`, `commit_sha`) plus
    detail for the human-readable summary.
    """

    committed: bool = Field(
        default=False,
        description="Whether a new commit was created and published",
    )

    commit_sha: str = Field(
        default="",
        description="SHA of the published commit; empty if nothing was committed",
    )

    exit_reason: ExitReason = Field(description="Why the protocol stopped")

    branch: str = Field(default="", description="Upstream branch that was targeted")

    attempts: int = Field(default=0, ge=0, description="Number of push attempts made")

    files: list[str] = Field(
        default_factory=list,
        description="Files included in the commit",
    )

    resolved_conflicts: list[str] = Field(
        default_factory=list,
        description="Paths whose stash-restore conflicts were auto-resolved",
    )

    author_name: str = Field(default="")
    author_email: str = Field(default="")

    message: str = Field(default="", description="Human-readable result message")

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def success(self) -> bool:
        return self.exit_reason.is_success

    @property
    def duration_seconds(self) -> float | None:
        """Calculate protocol duration in seconds."""
        if self.started_at and self.completed_at:
            delta = self.completed_at - self.started_at
            return delta.total_seconds()
        return None

    def summary(self) -> str:
        """Generate a one-line human-readable summary of the result."""
        if self.exit_reason == ExitReason.NO_CHANGES:
            return "No changes to commit"

        if not self.success:
            return f"Sync failed ({self.exit_reason.value}): {self.message}"

        parts = [f"Pushed {self.commit_sha[:8]} to {self.branch}"]
        if self.attempts > 1:
            parts.append(f"after {self.attempts} attempts")
        if self.files:
            noun = "file" if len(self.files) == 1 else "files"
            parts.append(f"{len(self.files)} {noun}")
        if self.resolved_conflicts:
            parts.append(f"{len(self.resolved_conflicts)} stash conflicts resolved")
        return ", ".join(parts)
