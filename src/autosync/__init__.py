"""
Autosync - Commit and push CI changes to a shared branch.

Integrates uncommitted changes from a working tree into a branch that other
jobs may be pushing to at the same time, using stash, rebase and bounded
push retries.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from autosync.core.config.models import SyncConfig
from autosync.core.sync.models import ExitReason, SyncResult

__all__ = ["SyncConfig", "SyncResult", "ExitReason", "__version__"]
