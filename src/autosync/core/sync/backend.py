"""
VCS backend protocol.

The sync engine talks to version control only through this interface, so
the protocol can be exercised against an in-memory fake as well as a real
git repository (see `autosync.core.sync.git.GitBackend`).
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from autosync.core.sync.models import ConflictSide, PushResult


@runtime_checkable
class VCSBackend(Protocol):
    """
    Protocol for version-control backends used by the sync engine.

    Backends are responsible for:
    - Reporting working tree state (branch, dirtiness, staged files)
    - Stash save/apply/drop with a list of conflicted paths on apply
    - Fetching and rebasing onto the upstream branch
    - Staging, committing and pushing

    Failures the protocol cannot handle are raised as `GitError`.
    """

    path: Path

    def is_work_tree(self) -> bool:
        """Return True if `path` is inside a VCS working tree."""
        ...

    def current_branch(self) -> str | None:
        """Return the checked-out branch name, or None when HEAD is detached."""
        ...

    def head_sha(self) -> str:
        """Return the SHA of HEAD."""
        ...

    def has_uncommitted_changes(self) -> bool:
        """Return True if there are tracked or untracked modifications."""
        ...

    def stash_save(self, message: str) -> str:
        """
        Stash all modifications, including untracked files.

        Returns:
            SHA of the created stash commit.
        """
        ...

    def stash_apply(self, ref: str) -> list[str]:
        """
        Reapply a stash onto the current HEAD without dropping it.

        Returns:
            Paths left in a conflicted state (empty on a clean apply). An
            untracked file whose path is now occupied in HEAD counts as
            conflicted.

        Raises:
            GitError: If the stash could not be applied for a reason other
                than content conflicts.
        """
        ...

    def stash_drop(self, ref: str) -> None:
        """Drop the stash entry whose commit SHA is `ref`."""
        ...

    def resolve_conflict(self, path: str, side: ConflictSide) -> None:
        """Replace a conflicted path in the working tree with the winning side."""
        ...

    def clear_conflicts(self) -> None:
        """Reset the index to HEAD, leaving working files untouched."""
        ...

    def fetch(self, remote: str, branch: str) -> bool:
        """
        Fetch `branch` from `remote`.

        Returns:
            True if the branch was fetched, False if it does not exist on
            the remote.
        """
        ...

    def rebase(self, upstream: str) -> list[str]:
        """
        Rebase local commits onto `upstream`.

        Returns:
            Conflicting paths. When non-empty the rebase is still in
            progress and the caller must call `rebase_abort()`.
        """
        ...

    def rebase_abort(self) -> None:
        """Abort an in-progress rebase, restoring the pre-rebase HEAD."""
        ...

    def stage(self, pattern: str) -> bool:
        """
        Stage files matching a pathspec glob, including deletions.

        Returns:
            False if the pattern matched nothing.
        """
        ...

    def staged_files(self) -> list[str]:
        """Return paths whose index content differs from HEAD."""
        ...

    def read_staged(self, path: str) -> bytes | None:
        """Return the staged content of `path`, or None if it is deleted."""
        ...

    def commit(self, message: str, author_name: str, author_email: str) -> str:
        """
        Commit the index.

        Returns:
            SHA of the new commit.
        """
        ...

    def uncommit(self) -> None:
        """Undo the last commit, keeping its changes in the index."""
        ...

    def push(self, remote: str, branch: str) -> PushResult:
        """
        Publish HEAD to `branch` on `remote`.

        Returns:
            PushResult.REJECTED when the remote tip has advanced.

        Raises:
            GitError: For any other push failure (auth, network).
        """
        ...
