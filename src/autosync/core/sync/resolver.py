"""
Conflict resolution strategies for stash restore.

A resolver is a plain function `resolve(path) -> ConflictSide` deciding,
per conflicted path, which version wins when a stash is reapplied onto a
HEAD that moved. There is no hunk-level merge: the winning side replaces the
whole file.

Strategies are looked up by name so the policy can be chosen from config:

    >>> resolver = get_resolver("local")
    >>> resolver("README.md")
    <ConflictSide.LOCAL: 'local'>
"""

from __future__ import annotations

from collections.abc import Callable

from autosync.core.sync.exceptions import SyncError
from autosync.core.sync.models import ConflictSide

ConflictResolver = Callable[[str], ConflictSide]


class StashConflictAborted(SyncError):
    """Raised by the `abort` strategy instead of picking a side."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Stash restore conflicts on {path} and the abort strategy is active",
            path=path,
        )
        self.path = path


def prefer_local(path: str) -> ConflictSide:
    """Keep the stashed (local) version. The default policy."""
    return ConflictSide.LOCAL


def prefer_upstream(path: str) -> ConflictSide:
    """Keep the version that arrived with the upstream rebase."""
    return ConflictSide.UPSTREAM


def abort_on_conflict(path: str) -> ConflictSide:
    """Refuse to pick a side."""
    raise StashConflictAborted(path)


RESOLVERS: dict[str, ConflictResolver] = {
    "local": prefer_local,
    "upstream": prefer_upstream,
    "abort": abort_on_conflict,
}

DEFAULT_STRATEGY = "local"


def get_resolver(name: str = DEFAULT_STRATEGY) -> ConflictResolver:
    """
    Look up a conflict resolution strategy by name.

    Args:
        name: One of "local", "upstream" or "abort"

    Returns:
        The resolver function

    Raises:
        ValueError: If the strategy name is unknown
    """
    try:
        return RESOLVERS[name]
    except KeyError:
        known = ", ".join(sorted(RESOLVERS))
        raise ValueError(f"Unknown conflict strategy '{name}' (expected one of: {known})") from None
