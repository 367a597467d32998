"""
The sync-commit-push protocol.

Integrates uncommitted changes from a working tree into a shared branch that
other jobs may be pushing to concurrently. There is no locking: every run
assumes it may lose the race to publish, and re-derives its state by
rebasing onto the new upstream tip before pushing again.

Flow:
    validate → fetch → stash → rebase → restore (resolving conflicts)
    → stage → marker check → commit → push, retrying rejected pushes with
    fetch → stash → rebase → restore → push until the budget runs out.

All state for one run lives in a `SyncContext` passed through each step.
The retry loop returns an `ExitReason`; exceptions for fatal outcomes are
raised only after the loop has exited.

Example:
    >>> from autosync.core.config import SyncConfig
    >>> engine = SyncEngine(SyncConfig(commit_message="Update generated docs"))
    >>> result = engine.run()
    >>> result.committed, result.commit_sha[:8]
    (True, '3f2a9c1e')
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from autosync.core.config.models import SyncConfig
from autosync.core.sync.backend import VCSBackend
from autosync.core.sync.exceptions import (
    CorruptionGuardError,
    GitError,
    PushRaceExhausted,
    SyncConflictError,
)
from autosync.core.sync.git import GitBackend
from autosync.core.sync.models import (
    ExitReason,
    ProtocolState,
    PushResult,
    RetryBudget,
    SyncResult,
)
from autosync.core.sync.resolver import ConflictResolver, get_resolver
from autosync.core.sync.stash import StashManager
from autosync.core.sync.staging import check_staged_content, split_patterns, stage_matching
from autosync.core.sync.validator import validate_inputs, validate_work_tree

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """
    Mutable state of one protocol run.

    Attributes:
        backend: VCS backend for the working tree
        stash: Stash manager wrapping every rebase
        budget: Push attempts allowed and used
        remote: Remote name
        branch: Upstream branch being pushed to
        state: Current protocol state
        commit_sha: SHA of our commit at HEAD (changes when a retry rebases it)
        files: Files in our commit
        conflict_paths: Paths of a committed-history rebase conflict
        last_error: Detail of the most recent failed retry cycle
    """

    backend: VCSBackend
    stash: StashManager
    budget: RetryBudget
    remote: str
    branch: str
    state: ProtocolState = ProtocolState.VALIDATED
    commit_sha: str | None = None
    files: list[str] = field(default_factory=list)
    conflict_paths: list[str] = field(default_factory=list)
    last_error: str = ""

    @property
    def upstream(self) -> str:
        return f"{self.remote}/{self.branch}"


class SyncEngine:
    """
    Runs the sync-commit-push protocol once.

    Attributes:
        config: Validated configuration for this run
        backend: VCS backend (a `GitBackend` on `config.path` by default)
        resolver: Stash-conflict policy (from `config.conflict_strategy` by default)
        context: State of the most recent run, available after `run()` returns
            or raises
    """

    def __init__(
        self,
        config: SyncConfig,
        backend: VCSBackend | None = None,
        *,
        resolver: ConflictResolver | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.backend = backend or GitBackend(
            config.path,
            committer_name=config.commit_user_name,
            committer_email=config.commit_user_email,
            timeout=config.git_timeout,
        )
        self.resolver = resolver or get_resolver(config.conflict_strategy)
        self._sleep = sleep
        self.context: SyncContext | None = None

    def run(self) -> SyncResult:
        """
        Execute the protocol.

        Returns:
            SyncResult with exit reason PUSHED or NO_CHANGES.

        Raises:
            ValidationError: Bad input; nothing was touched.
            SyncConflictError: Rebase conflicts with committed upstream history.
            CorruptionGuardError: Conflict markers in staged content.
            PushRaceExhausted: Every push attempt was rejected.
            GitError: A git command failed for another reason.
        """
        started_at = datetime.now()
        config = self.config

        inputs = validate_inputs(config.path, config.commit_message, config.max_retries)
        branch = validate_work_tree(self.backend, config.branch)

        ctx = SyncContext(
            backend=self.backend,
            stash=StashManager(self.backend, self.resolver),
            budget=RetryBudget(max_retries=inputs.max_retries),
            remote=config.remote,
            branch=branch,
        )
        self.context = ctx
        logger.info("Syncing %s with %s", inputs.path, ctx.upstream)

        try:
            conflicts = self._sync(ctx)
            if conflicts:
                raise SyncConflictError(conflicts, ctx.upstream)
            ctx.state = ProtocolState.RESTORED

            change_set = stage_matching(self.backend, split_patterns(config.file_pattern))
            check_staged_content(self.backend, change_set)
            ctx.state = ProtocolState.STAGE_CHECKED
        except (SyncConflictError, CorruptionGuardError):
            ctx.state = ProtocolState.FAILED
            raise

        if change_set.is_empty:
            logger.info("No changes to commit")
            ctx.state = ProtocolState.NO_CHANGES
            return self._result(ctx, ExitReason.NO_CHANGES, started_at, "No changes to commit")

        ctx.files = change_set.files
        ctx.commit_sha = self.backend.commit(
            inputs.commit_message, config.commit_user_name, config.commit_user_email
        )
        ctx.state = ProtocolState.COMMITTED
        logger.info("Committed %s (%d files)", ctx.commit_sha[:8], len(ctx.files))

        try:
            reason = self._push_loop(ctx)
        except BaseException:
            self._rollback_commit(ctx)
            raise

        if reason == ExitReason.CONFLICT:
            self._rollback_commit(ctx)
            raise SyncConflictError(ctx.conflict_paths, ctx.upstream)

        if reason == ExitReason.EXHAUSTED:
            self._rollback_commit(ctx)
            raise PushRaceExhausted(ctx.budget.used, ctx.last_error)

        return self._result(ctx, reason, started_at, f"Pushed to {ctx.upstream}")

    def _sync(self, ctx: SyncContext) -> list[str]:
        """
        Fetch the upstream branch and rebase onto it with local changes stashed.

        Returns:
            Paths of a committed-history conflict (the rebase was aborted),
            or an empty list on success.
        """
        if not self.backend.fetch(ctx.remote, ctx.branch):
            return []

        with ctx.stash.preserved() as handle:
            if handle.is_live:
                ctx.state = ProtocolState.STASHED
            conflicts = self.backend.rebase(ctx.upstream)
            if conflicts:
                logger.error(
                    "Rebase onto %s conflicts with committed history: %s",
                    ctx.upstream,
                    ", ".join(conflicts),
                )
                self.backend.rebase_abort()
                ctx.conflict_paths = conflicts
                return conflicts
            ctx.state = ProtocolState.SYNCED
        return []

    def _push_loop(self, ctx: SyncContext) -> ExitReason:
        """
        Push HEAD, re-syncing and retrying on rejection until the budget runs out.

        Our commit is never recreated: a retry rebases it onto the new tip,
        which may change its SHA, and pushes the result.
        """
        while not ctx.budget.exhausted:
            attempt = ctx.budget.consume()

            if attempt > 1:
                delay = self.config.retry_backoff_seconds * (2 ** (attempt - 2))
                if delay > 0:
                    logger.debug("Waiting %.2fs before retry", delay)
                    self._sleep(delay)

                try:
                    conflicts = self._sync(ctx)
                except GitError as e:
                    ctx.last_error = e.stderr or str(e)
                    logger.warning(
                        "Retry %d/%d could not sync with %s: %s",
                        attempt,
                        ctx.budget.max_retries,
                        ctx.upstream,
                        ctx.last_error,
                    )
                    continue

                if conflicts:
                    ctx.state = ProtocolState.FAILED
                    return ExitReason.CONFLICT

                ctx.commit_sha = self.backend.head_sha()
                ctx.state = ProtocolState.COMMITTED

            ctx.state = ProtocolState.PUSH_ATTEMPTED
            logger.info(
                "Pushing %s to %s (attempt %d/%d)",
                (ctx.commit_sha or "")[:8],
                ctx.upstream,
                attempt,
                ctx.budget.max_retries,
            )

            if self.backend.push(ctx.remote, ctx.branch) == PushResult.PUSHED:
                ctx.state = ProtocolState.PUSHED
                return ExitReason.PUSHED

            ctx.state = ProtocolState.PUSH_REJECTED
            ctx.last_error = "remote branch advanced"
            logger.warning(
                "Push attempt %d/%d rejected: %s has advanced",
                attempt,
                ctx.budget.max_retries,
                ctx.upstream,
            )

        ctx.state = ProtocolState.EXHAUSTED
        return ExitReason.EXHAUSTED

    def _rollback_commit(self, ctx: SyncContext) -> None:
        """Undo our unpublished commit so its changes stay in the working tree."""
        if ctx.commit_sha is None or ctx.state == ProtocolState.PUSHED:
            return

        try:
            self.backend.uncommit()
            logger.info("Rolled back unpublished commit %s", ctx.commit_sha[:8])
        except GitError as e:
            logger.error(
                "Could not roll back commit %s: %s", ctx.commit_sha[:8], e.stderr or e
            )
        ctx.commit_sha = None

    def _result(
        self,
        ctx: SyncContext,
        reason: ExitReason,
        started_at: datetime,
        message: str,
    ) -> SyncResult:
        committed = reason == ExitReason.PUSHED
        return SyncResult(
            committed=committed,
            commit_sha=(ctx.commit_sha or "") if committed else "",
            exit_reason=reason,
            branch=ctx.branch,
            attempts=ctx.budget.used,
            files=ctx.files if committed else [],
            resolved_conflicts=list(ctx.stash.resolved_conflicts),
            author_name=self.config.commit_user_name,
            author_email=self.config.commit_user_email,
            message=message,
            started_at=started_at,
            completed_at=datetime.now(),
        )
