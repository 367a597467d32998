"""
Pre-flight validation of protocol inputs.

Every check here is read-only. Validation runs before anything touches the
working tree, so a `ValidationError` never leaves work to clean up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from autosync.core.sync.backend import VCSBackend
from autosync.core.sync.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ValidatedInputs:
    """Inputs that passed validation, converted to their working types."""

    path: Path
    commit_message: str
    max_retries: int


def parse_max_retries(raw: int | str) -> int:
    """
    Parse the retry budget.

    Args:
        raw: Value as supplied by the caller (CI inputs arrive as strings)

    Returns:
        The budget as a positive integer

    Raises:
        ValidationError: If the value is not an integer greater than zero

    Example:
        >>> parse_max_retries(" 3 ")
        3
    """
    if isinstance(raw, bool):
        raise ValidationError("max_retries", f"must be an integer, got {raw!r}", raw)

    if isinstance(raw, int):
        value = raw
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            raise ValidationError(
                "max_retries", f"must be an integer, got {raw!r}", raw
            ) from None

    if value < 1:
        raise ValidationError("max_retries", f"must be > 0, got {value}", raw)
    return value


def validate_inputs(
    path: Path | str,
    commit_message: str | None,
    max_retries: int | str,
) -> ValidatedInputs:
    """
    Check the caller's inputs before the protocol starts.

    Checks, in order: the directory exists, the commit message is non-empty
    and the retry count parses as a positive integer. Whether the directory
    is a working tree is checked by `validate_work_tree` once a backend
    exists for it.

    Raises:
        ValidationError: Naming the first invalid input.
    """
    directory = Path(path).expanduser()
    if not directory.exists():
        raise ValidationError("path", f"directory does not exist: {directory}", str(path))
    if not directory.is_dir():
        raise ValidationError("path", f"not a directory: {directory}", str(path))

    message = (commit_message or "").strip()
    if not message:
        raise ValidationError("commit_message", "must not be empty", commit_message)

    retries = parse_max_retries(max_retries)

    return ValidatedInputs(path=directory.resolve(), commit_message=message, max_retries=retries)


def validate_work_tree(backend: VCSBackend, branch: str | None = None) -> str:
    """
    Check the backend points at a usable working tree and resolve the branch.

    Args:
        backend: Backend for the validated path
        branch: Explicit target branch, or None to use the checked-out branch

    Returns:
        The branch the protocol will push to

    Raises:
        ValidationError: If the path is not a working tree, or HEAD is
            detached and no branch was given.
    """
    if not backend.is_work_tree():
        raise ValidationError("path", f"not a git working tree: {backend.path}", str(backend.path))

    if branch:
        return branch

    current = backend.current_branch()
    if current is None:
        raise ValidationError(
            "branch",
            "HEAD is detached; set the target branch explicitly",
        )

    logger.debug("Target branch resolved from HEAD: %s", current)
    return current
