"""
Stash/restore management around upstream rebases.

Local work is snapshotted into a stash before the working tree is rebased
and reapplied afterwards. If the reapply conflicts with what the rebase
brought in, the configured resolver picks a winner per path (the stashed
version by default) and the conflict state is cleared.

Use `StashManager.preserved()` rather than calling `snapshot`/`restore`
directly; it guarantees the snapshot is restored exactly once on every
exit path, including exceptions and `SystemExit` raised by signal handlers.

Example:
    >>> manager = StashManager(backend)
    >>> with manager.preserved() as handle:
    ...     backend.rebase("origin/main")
    >>> manager.resolved_conflicts
    ['README.md']
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from autosync.core.sync.backend import VCSBackend
from autosync.core.sync.models import StashHandle
from autosync.core.sync.resolver import ConflictResolver, prefer_local

logger = logging.getLogger(__name__)

STASH_MESSAGE_PREFIX = "autosync"


class StashManager:
    """
    Snapshot and restore uncommitted changes.

    Attributes:
        backend: VCS backend operating on the working tree
        resolver: Policy deciding which side wins a conflicted path
        resolved_conflicts: Paths auto-resolved across all restores so far
    """

    def __init__(self, backend: VCSBackend, resolver: ConflictResolver = prefer_local) -> None:
        self.backend = backend
        self.resolver = resolver
        self.resolved_conflicts: list[str] = []

    def snapshot(self) -> StashHandle:
        """
        Stash all tracked and untracked modifications.

        Returns:
            A live handle, or `StashHandle.CLEAN` if there was nothing to stash.
        """
        if not self.backend.has_uncommitted_changes():
            logger.debug("Working tree clean, nothing to stash")
            return StashHandle.CLEAN

        message = f"{STASH_MESSAGE_PREFIX}-{uuid.uuid4().hex[:12]}"
        ref = self.backend.stash_save(message)
        logger.info("Stashed local changes as %s", ref[:8])
        return StashHandle(ref=ref, message=message)

    def restore(self, handle: StashHandle) -> list[str]:
        """
        Reapply a snapshot onto the current HEAD and consume it.

        Conflicting paths are resolved with `self.resolver`. When the
        resolver refuses (raises), the index is reset, the stash entry is
        kept for manual recovery and the error propagates.

        Args:
            handle: Handle returned by `snapshot()`

        Returns:
            Paths whose conflicts were auto-resolved (empty on a clean apply).

        Raises:
            GitError: If the stash could not be reapplied. The entry is kept.
        """
        if not handle.is_live:
            return []

        assert handle.ref is not None
        conflicts = self.backend.stash_apply(handle.ref)

        if conflicts:
            try:
                for path in conflicts:
                    side = self.resolver(path)
                    logger.warning(
                        "Stash restore conflict on %s: keeping %s version", path, side.value
                    )
                    self.backend.resolve_conflict(path, side)
            finally:
                self.backend.clear_conflicts()
            self.resolved_conflicts.extend(
                p for p in conflicts if p not in self.resolved_conflicts
            )

        self.backend.stash_drop(handle.ref)
        handle.consumed = True
        logger.info(
            "Restored stash %s%s",
            handle.ref[:8],
            f" ({len(conflicts)} conflicts resolved)" if conflicts else "",
        )
        return conflicts

    def discard(self, handle: StashHandle) -> None:
        """Drop a snapshot without reapplying it."""
        if not handle.is_live:
            return

        assert handle.ref is not None
        self.backend.stash_drop(handle.ref)
        handle.consumed = True
        logger.info("Discarded stash %s", handle.ref[:8])

    @contextmanager
    def preserved(self) -> Iterator[StashHandle]:
        """
        Keep local changes out of the way for the duration of the block.

        The snapshot is restored when the block exits, however it exits.
        """
        handle = self.snapshot()
        try:
            yield handle
        finally:
            self.restore(handle)

