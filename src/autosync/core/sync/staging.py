"""
Staging and the conflict-marker safety check.

Files matching the caller's patterns are added to the index, then the
staged content of every staged file is scanned for conflict markers. The
scan is the last guard before a commit: it runs whether or not a stash
conflict was auto-resolved earlier, and any hit stops the protocol.
"""

from __future__ import annotations

import logging
import re

from autosync.core.sync.backend import VCSBackend
from autosync.core.sync.exceptions import CorruptionGuardError
from autosync.core.sync.models import StagedChangeSet

logger = logging.getLogger(__name__)

# Marker lines as git writes them: "<<<<<<< ours", a bare "=======", ">>>>>>> theirs".
CONFLICT_MARKER_RE = re.compile(rb"^(?:<{7}(?:[ \t].*)?|={7}|>{7}(?:[ \t].*)?)\r?$")

BINARY_SNIFF_BYTES = 8000


def split_patterns(file_pattern: str | list[str]) -> list[str]:
    """
    Split a whitespace-separated pattern string into individual globs.

    Example:
        >>> split_patterns("*.md  docs/*.rst")
        ['*.md', 'docs/*.rst']
        >>> split_patterns("")
        ['.']
    """
    if isinstance(file_pattern, str):
        patterns = file_pattern.split()
    else:
        patterns = [p for item in file_pattern for p in item.split()]
    return patterns or ["."]


def is_binary(content: bytes) -> bool:
    """Sniff binary content the way git does: a NUL in the first 8000 bytes."""
    return b"\0" in content[:BINARY_SNIFF_BYTES]


def find_conflict_markers(content: bytes) -> list[int]:
    """
    Find conflict-marker lines in file content.

    Args:
        content: Raw file content

    Returns:
        1-based line numbers of marker lines (empty if none, or if binary)
    """
    if is_binary(content):
        return []

    return [
        number
        for number, line in enumerate(content.split(b"\n"), start=1)
        if CONFLICT_MARKER_RE.match(line)
    ]


def stage_matching(backend: VCSBackend, patterns: list[str]) -> StagedChangeSet:
    """
    Stage files matching the patterns and report the staged delta.

    Args:
        backend: VCS backend for the working tree
        patterns: Pathspec globs; a pattern matching nothing is skipped

    Returns:
        Files whose index content differs from HEAD
    """
    for pattern in patterns:
        if not backend.stage(pattern):
            logger.info("Pattern %r matched no files", pattern)

    files = backend.staged_files()
    logger.debug("Staged %d files: %s", len(files), ", ".join(files))
    return StagedChangeSet(files=files)


def check_staged_content(backend: VCSBackend, change_set: StagedChangeSet) -> None:
    """
    Refuse to continue if any staged file contains conflict markers.

    Deleted files and binary content are skipped.

    Raises:
        CorruptionGuardError: Listing every marker location found.
    """
    locations: list[tuple[str, int]] = []
    for path in change_set.files:
        content = backend.read_staged(path)
        if content is None:
            continue
        for line in find_conflict_markers(content):
            locations.append((path, line))

    if locations:
        logger.error("Conflict markers in staged content: %d locations", len(locations))
        raise CorruptionGuardError(locations)
