"""
Pytest configuration and shared fixtures.

Provides an isolated environment, real git repositories (a bare remote plus
clones of it) and an in-memory `FakeBackend` for protocol tests that should
not depend on git.
"""

from __future__ import annotations

import fnmatch
import os
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from autosync.core.sync.exceptions import GitError
from autosync.core.sync.models import ConflictSide, PushResult

# ==============================================================================
# Environment Isolation
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's git config, CI variables and autosync config out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")

    for name in list(os.environ):
        if name.startswith(("INPUT_", "AUTOSYNC_", "GITHUB_", "GIT_AUTHOR_", "GIT_COMMITTER_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("RUNNER_DEBUG", raising=False)


# ==============================================================================
# Git Repository Fixtures
# ==============================================================================


def git(repo: Path, *args: str) -> str:
    """Run a git command in `repo` and return its stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def configure_identity(repo: Path) -> None:
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "commit.gpgsign", "false")


@pytest.fixture
def remote_repo(tmp_path: Path) -> Path:
    """
    Create a bare remote whose `main` branch holds one commit.

    The commit adds README.md ("# Test Repo") and notes.txt (three lines).
    """
    remote = tmp_path / "remote.git"
    subprocess.run(["git", "init", "--bare", str(remote)], capture_output=True, check=True)
    git(remote, "symbolic-ref", "HEAD", "refs/heads/main")

    seed = tmp_path / "seed"
    seed.mkdir()
    git(seed, "init")
    configure_identity(seed)
    git(seed, "checkout", "-b", "main")
    (seed / "README.md").write_text("# Test Repo\n")
    (seed / "notes.txt").write_text("one\ntwo\nthree\n")
    git(seed, "add", ".")
    git(seed, "commit", "-m", "Initial commit")
    git(seed, "remote", "add", "origin", str(remote))
    git(seed, "push", "origin", "main")

    return remote


@pytest.fixture
def clone_factory(tmp_path: Path, remote_repo: Path) -> Callable[[str], Path]:
    """Return a function creating a fresh clone of the remote under a given name."""

    def make_clone(name: str) -> Path:
        path = tmp_path / name
        subprocess.run(
            ["git", "clone", "--quiet", str(remote_repo), str(path)],
            capture_output=True,
            check=True,
        )
        configure_identity(path)
        return path

    return make_clone


@pytest.fixture
def work_tree(clone_factory: Callable[[str], Path]) -> Path:
    """A clone of the remote with `main` checked out."""
    return clone_factory("work")


def land_commit(clone: Path, name: str, content: str, message: str) -> str:
    """
    Publish a commit from another clone, as a competing job would.

    Returns:
        SHA of the pushed commit.
    """
    git(clone, "fetch", "--quiet", "origin")
    git(clone, "reset", "--quiet", "--hard", "origin/main")
    (clone / name).write_text(content)
    git(clone, "add", name)
    git(clone, "commit", "--quiet", "-m", message)
    git(clone, "push", "--quiet", "origin", "HEAD:refs/heads/main")
    return git(clone, "rev-parse", "HEAD")


def remote_log(remote: Path, branch: str = "main") -> list[str]:
    """Commit subjects on the remote branch, newest first."""
    return git(remote, "log", "--format=%s", branch).splitlines()


# ==============================================================================
# Fake Backend
# ==============================================================================


class FakeBackend:
    """
    In-memory VCS backend.

    Uncommitted changes live in `changes` (path -> content, None for a
    deletion). Behaviour of the remote is scripted through the
    `fetch_results`, `rebase_conflicts` and `push_results` queues; an
    exception in a queue is raised instead of returned.
    """

    def __init__(self, path: Path, *, branch: str | None = "main") -> None:
        self.path = path
        self.work_tree = True
        self.branch = branch
        self.head = "base0000"

        self.changes: dict[str, bytes | None] = {}
        self.index: dict[str, bytes | None] = {}
        self.stashes: list[tuple[str, dict[str, bytes | None]]] = []
        self.commits: list[tuple[str, dict[str, bytes | None]]] = []
        self.pushed: list[str] = []
        self.commit_args: list[tuple[str, str, str]] = []
        self.resolved: list[tuple[str, ConflictSide]] = []

        self.fetch_results: list[bool | BaseException] = []
        self.stash_conflicts: list[str] = []
        self.rebase_conflicts: list[list[str]] = []
        self.push_results: list[PushResult | BaseException] = []

        self.calls: list[str] = []
        self.rebased_with_dirty_tree = False
        self.rebase_in_progress = False
        self._counter = 0

    def _sha(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter:04d}".ljust(40, "0")

    def _next(self, queue: list, default):
        if not queue:
            return default
        value = queue.pop(0)
        if isinstance(value, BaseException):
            raise value
        return value

    def is_work_tree(self) -> bool:
        self.calls.append("is_work_tree")
        return self.work_tree

    def current_branch(self) -> str | None:
        self.calls.append("current_branch")
        return self.branch

    def head_sha(self) -> str:
        return self.head

    def has_uncommitted_changes(self) -> bool:
        return bool(self.changes or self.index)

    def stash_save(self, message: str) -> str:
        self.calls.append("stash_save")
        sha = self._sha("stash")
        saved = {**self.changes, **self.index}
        self.stashes.insert(0, (sha, saved))
        self.changes = {}
        self.index = {}
        return sha

    def stash_apply(self, ref: str) -> list[str]:
        self.calls.append("stash_apply")
        saved = dict(self.stashes)[ref]
        self.changes.update(saved)
        conflicts, self.stash_conflicts = self.stash_conflicts, []
        return conflicts

    def stash_drop(self, ref: str) -> None:
        self.calls.append("stash_drop")
        self.stashes = [(sha, saved) for sha, saved in self.stashes if sha != ref]

    def resolve_conflict(self, path: str, side: ConflictSide) -> None:
        self.resolved.append((path, side))

    def clear_conflicts(self) -> None:
        self.calls.append("clear_conflicts")

    def fetch(self, remote: str, branch: str) -> bool:
        self.calls.append("fetch")
        return self._next(self.fetch_results, True)

    def rebase(self, upstream: str) -> list[str]:
        self.calls.append("rebase")
        if self.changes or self.index:
            self.rebased_with_dirty_tree = True
        conflicts = self.rebase_conflicts.pop(0) if self.rebase_conflicts else []
        if conflicts:
            self.rebase_in_progress = True
            return conflicts
        if self.commits:
            # Replaying onto a new tip gives local commits new SHAs.
            self.commits = [(self._sha("rebased"), files) for _, files in self.commits]
            self.head = self.commits[-1][0]
        return []

    def rebase_abort(self) -> None:
        self.calls.append("rebase_abort")
        self.rebase_in_progress = False

    def stage(self, pattern: str) -> bool:
        matched = [p for p in self.changes if pattern == "." or fnmatch.fnmatch(p, pattern)]
        if not matched and pattern != ".":
            return False
        for path in matched:
            self.index[path] = self.changes.pop(path)
        return True

    def staged_files(self) -> list[str]:
        return sorted(self.index)

    def read_staged(self, path: str) -> bytes | None:
        return self.index.get(path)

    def commit(self, message: str, author_name: str, author_email: str) -> str:
        self.calls.append("commit")
        if not self.index:
            raise GitError("nothing to commit", command=["git", "commit"])
        sha = self._sha("commit")
        self.commits.append((sha, dict(self.index)))
        self.commit_args.append((message, author_name, author_email))
        self.index = {}
        self.head = sha
        return sha

    def uncommit(self) -> None:
        self.calls.append("uncommit")
        _, files = self.commits.pop()
        self.index.update(files)
        self.head = self.commits[-1][0] if self.commits else "base0000"

    def push(self, remote: str, branch: str) -> PushResult:
        self.calls.append("push")
        result = self._next(self.push_results, PushResult.PUSHED)
        if result == PushResult.PUSHED:
            self.pushed.append(self.head)
        return result


@pytest.fixture
def fake_backend(tmp_path: Path) -> FakeBackend:
    """Provide an in-memory backend rooted at a real (empty) directory."""
    path = tmp_path / "tree"
    path.mkdir()
    return FakeBackend(path)
