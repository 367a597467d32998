"""
Git implementation of the VCS backend.

Drives the `git` CLI through subprocess. Every command runs with the
working tree as cwd, a C locale (so error text can be matched) and terminal
prompts disabled (so a missing credential fails instead of hanging a CI job).
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from autosync.core.sync.exceptions import GitError
from autosync.core.sync.models import ConflictSide, PushResult

logger = logging.getLogger(__name__)

# Substrings of `git push` output that mean the remote tip moved under us.
REJECTION_MARKERS = (
    "[rejected]",
    "non-fast-forward",
    "fetch first",
    "stale info",
    "cannot lock ref",
    "incorrect old value",
)

__all__ = ["GitBackend", "GitError", "REJECTION_MARKERS"]


class GitBackend:
    """
    VCS backend backed by a real git working tree.

    Example:
        >>> backend = GitBackend(Path("."), committer_name="bot", committer_email="bot@x")
        >>> backend.fetch("origin", "main")
        True
        >>> backend.rebase("origin/main")
        []
    """

    def __init__(
        self,
        path: Path,
        *,
        committer_name: str | None = None,
        committer_email: str | None = None,
        timeout: int = 120,
    ) -> None:
        """
        Initialize the backend.

        Args:
            path: Working tree directory. Commands run with this as cwd.
            committer_name: Identity used for commits created by rebase and
                        stash operations. Falls back to git config when None.
            committer_email: Email paired with `committer_name`.
            timeout: Seconds before a single git command is abandoned.
        """
        self.path = Path(path).resolve()
        self.timeout = timeout
        self._collisions: dict[str, str] = {}
        self._env = os.environ.copy()
        self._env["LC_ALL"] = "C"
        self._env["GIT_TERMINAL_PROMPT"] = "0"
        if committer_name and committer_email:
            self._env["GIT_COMMITTER_NAME"] = committer_name
            self._env["GIT_COMMITTER_EMAIL"] = committer_email

    def _exec(
        self,
        args: list[str],
        *,
        env: dict[str, str] | None = None,
        text: bool = True,
    ) -> subprocess.CompletedProcess:
        cmd = ["git"] + args

        logger.debug("Running git command: %s", " ".join(cmd))

        try:
            return subprocess.run(
                cmd,
                cwd=self.path,
                capture_output=True,
                text=text,
                timeout=self.timeout,
                env=env or self._env,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"Git command timed out: {' '.join(cmd)}", command=cmd) from e
        except FileNotFoundError as e:
            raise GitError("git not found in PATH", command=cmd) from e
        except NotADirectoryError as e:
            raise GitError(f"Not a directory: {self.path}", command=cmd) from e

    def _run_git(
        self,
        args: list[str],
        *,
        check: bool = True,
        env: dict[str, str] | None = None,
    ) -> str:
        """
        Run a git command and return its stdout.

        Args:
            args: Git command arguments (without "git" prefix).
            check: Whether to raise on non-zero exit code.
            env: Environment override for this command.

        Returns:
            Command stdout as string (stripped).

        Raises:
            GitError: If the command fails and check=True.
        """
        result = self._exec(args, env=env)

        if check and result.returncode != 0:
            stderr = result.stderr.strip() if result.stderr else ""
            raise GitError(
                f"Git command failed: git {' '.join(args)}",
                command=["git"] + args,
                stderr=stderr,
            )

        return result.stdout.strip() if result.stdout else ""

    def _unmerged_paths(self) -> list[str]:
        output = self._run_git(["diff", "--name-only", "--diff-filter=U", "-z"], check=False)
        return [p for p in output.split("\0") if p]

    def _stash_shas(self) -> list[str]:
        output = self._run_git(["stash", "list", "--format=%H"], check=False)
        return [line for line in output.splitlines() if line]

    # ------------------------------------------------------------------
    # Working tree state
    # ------------------------------------------------------------------

    def is_work_tree(self) -> bool:
        try:
            return self._run_git(["rev-parse", "--is-inside-work-tree"]) == "true"
        except GitError:
            return False

    def current_branch(self) -> str | None:
        branch = self._run_git(["symbolic-ref", "--quiet", "--short", "HEAD"], check=False)
        return branch or None

    def head_sha(self) -> str:
        return self._run_git(["rev-parse", "HEAD"])

    def has_uncommitted_changes(self) -> bool:
        status = self._run_git(["status", "--porcelain", "--untracked-files=all"])
        return bool(status)

    # ------------------------------------------------------------------
    # Stash
    # ------------------------------------------------------------------

    def stash_save(self, message: str) -> str:
        before = self._stash_shas()
        self._run_git(["stash", "push", "--include-untracked", "--message", message])
        after = self._stash_shas()

        if not after or (before and after[0] == before[0]):
            raise GitError("git stash did not create an entry", command=["git", "stash", "push"])

        logger.debug("Created stash %s (%s)", after[0][:8], message)
        return after[0]

    def _untracked_collisions(self, ref: str) -> list[str]:
        """Untracked files saved in stash `ref` that HEAD now tracks, unmodified."""
        untracked = f"{ref}^3"
        if self._exec(["rev-parse", "--verify", "--quiet", untracked]).returncode != 0:
            return []
        saved = self._run_git(["ls-tree", "-r", "-z", "--name-only", untracked])
        tracked = set(self._run_git(["ls-tree", "-r", "-z", "--name-only", "HEAD"]).split("\0"))
        dirty = set(self._run_git(["diff", "--name-only", "-z", "HEAD"]).split("\0"))
        return [
            p
            for p in saved.split("\0")
            if p in tracked and p not in dirty and (self.path / p).is_file()
        ]

    def stash_apply(self, ref: str) -> list[str]:
        # git refuses to restore an untracked file over one the rebase brought
        # in, so those paths are cleared first and reported as conflicts.
        collisions = self._untracked_collisions(ref)
        for path in collisions:
            logger.debug("Untracked %s collides with a file in HEAD", path)
            (self.path / path).unlink()
        self._collisions = {path: ref for path in collisions}

        result = self._exec(["stash", "apply", ref])
        if result.returncode == 0:
            return collisions

        conflicts = self._unmerged_paths()
        if conflicts:
            return conflicts + [p for p in collisions if p not in conflicts]

        if collisions:
            self._collisions = {}
            self._exec(["checkout", "HEAD", "--", *collisions])
        raise GitError(
            f"Failed to reapply stash {ref[:8]}; the stash entry was kept",
            command=["git", "stash", "apply", ref],
            stderr=(result.stderr or "").strip(),
        )

    def stash_drop(self, ref: str) -> None:
        shas = self._stash_shas()
        if ref not in shas:
            logger.warning("Stash %s no longer exists, nothing to drop", ref[:8])
            return
        index = shas.index(ref)
        self._run_git(["stash", "drop", "--quiet", f"stash@{{{index}}}"])

    def resolve_conflict(self, path: str, side: ConflictSide) -> None:
        ref = self._collisions.pop(path, None)
        if ref is not None:
            source = f"{ref}^3" if side == ConflictSide.LOCAL else "HEAD"
            self._run_git(["checkout", source, "--", path])
            return

        # While a stash is applied, "ours" is HEAD and "theirs" is the stash.
        flag = "--theirs" if side == ConflictSide.LOCAL else "--ours"
        result = self._exec(["checkout", flag, "--", path])
        if result.returncode != 0:
            # The winning side deleted the file.
            logger.debug("%s side of %s is a deletion", side.value, path)
            self._run_git(["rm", "--quiet", "--force", "--", path])

    def clear_conflicts(self) -> None:
        self._run_git(["reset", "--quiet"])

    # ------------------------------------------------------------------
    # Upstream sync
    # ------------------------------------------------------------------

    def fetch(self, remote: str, branch: str) -> bool:
        refspec = f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}"
        result = self._exec(["fetch", "--quiet", remote, refspec])
        if result.returncode == 0:
            return True

        stderr = (result.stderr or "").strip()
        if "couldn't find remote ref" in stderr.lower():
            logger.info("Branch %s does not exist on %s yet", branch, remote)
            return False

        raise GitError(
            f"Failed to fetch {branch} from {remote}",
            command=["git", "fetch", remote, refspec],
            stderr=stderr,
        )

    def rebase(self, upstream: str) -> list[str]:
        result = self._exec(["rebase", upstream])
        if result.returncode == 0:
            return []

        conflicts = self._unmerged_paths()
        if conflicts:
            return conflicts

        # Failed before replaying anything (e.g. dirty tree); clear any leftovers.
        self._exec(["rebase", "--abort"])
        raise GitError(
            f"Failed to rebase onto {upstream}",
            command=["git", "rebase", upstream],
            stderr=(result.stderr or "").strip(),
        )

    def rebase_abort(self) -> None:
        self._run_git(["rebase", "--abort"])

    # ------------------------------------------------------------------
    # Stage, commit, push
    # ------------------------------------------------------------------

    def stage(self, pattern: str) -> bool:
        result = self._exec(["add", "--all", "--", pattern])
        if result.returncode == 0:
            return True

        stderr = (result.stderr or "").strip()
        if "did not match any files" in stderr:
            return False

        raise GitError(
            f"Failed to stage {pattern}",
            command=["git", "add", "--all", "--", pattern],
            stderr=stderr,
        )

    def staged_files(self) -> list[str]:
        output = self._run_git(["diff", "--cached", "--name-only", "-z"])
        return [p for p in output.split("\0") if p]

    def read_staged(self, path: str) -> bytes | None:
        result = self._exec(["show", f":{path}"], text=False)
        if result.returncode != 0:
            return None
        return result.stdout

    def commit(self, message: str, author_name: str, author_email: str) -> str:
        env = dict(self._env)
        env.update(
            GIT_AUTHOR_NAME=author_name,
            GIT_AUTHOR_EMAIL=author_email,
            GIT_COMMITTER_NAME=author_name,
            GIT_COMMITTER_EMAIL=author_email,
        )
        self._run_git(["commit", "--quiet", "--message", message], env=env)
        return self.head_sha()

    def uncommit(self) -> None:
        self._run_git(["reset", "--quiet", "--soft", "HEAD~1"])

    def push(self, remote: str, branch: str) -> PushResult:
        refspec = f"HEAD:refs/heads/{branch}"
        result = self._exec(["push", "--porcelain", remote, refspec])
        if result.returncode == 0:
            return PushResult.PUSHED

        output = f"{result.stdout or ''}\n{result.stderr or ''}".lower()
        if any(marker in output for marker in REJECTION_MARKERS):
            return PushResult.REJECTED

        raise GitError(
            f"Failed to push to {remote}/{branch}",
            command=["git", "push", remote, refspec],
            stderr=(result.stderr or "").strip(),
        )

