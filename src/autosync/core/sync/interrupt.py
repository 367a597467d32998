"""
Signal handling so cleanup runs when a CI job is cancelled.

Runners cancel jobs with SIGINT or SIGTERM. By default SIGTERM kills the
process without unwinding, which would leave a stash entry behind. The
`InterruptHandler` turns the first signal into `SystemExit(128 + signum)` so
every `finally` block (stash restore, commit rollback) executes. Signals
that arrive while that cleanup is running are reported and ignored.

Usage:
    >>> with InterruptHandler():
    ...     engine.run()
"""

from __future__ import annotations

import signal
import sys
from types import TracebackType
from typing import Any


class InterruptHandler:
    """
    Handles SIGINT/SIGTERM for clean protocol shutdown.

    Attributes:
        interrupted: True once a signal was received.
        signum: Number of the first signal received, if any.
    """

    def __init__(self) -> None:
        """Initialize the interrupt handler with no interrupts received."""
        self._interrupted = False
        self.signum: int | None = None
        self._original_sigint: Any = None
        self._original_sigterm: Any = None

    @property
    def interrupted(self) -> bool:
        return self._interrupted

    def register(self) -> None:
        """
        Register signal handlers for SIGINT and SIGTERM.

        Saves the original signal handlers so they can be restored later.
        """
        self._original_sigint = signal.signal(signal.SIGINT, self._handle_signal)
        self._original_sigterm = signal.signal(signal.SIGTERM, self._handle_signal)

    def unregister(self) -> None:
        """Restore original signal handlers."""
        if self._original_sigint is not None:
            signal.signal(signal.SIGINT, self._original_sigint)
            self._original_sigint = None

        if self._original_sigterm is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm)
            self._original_sigterm = None

    def __enter__(self) -> InterruptHandler:
        self.register()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unregister()

    def _handle_signal(self, signum: int, frame: object) -> None:
        """
        Internal signal handler called by the signal module.

        - First call: records the signal and raises SystemExit(128 + signum)
        - Later calls: cleanup is already unwinding, so they are ignored

        Args:
            signum: Signal number (SIGINT=2, SIGTERM=15).
            frame: Current stack frame (unused).
        """
        if self._interrupted:
            self._write_to_stderr("\n[Cleanup in progress, signal ignored]\n")
            return

        self._interrupted = True
        self.signum = signum
        self._write_to_stderr(
            f"\n[Received {signal.Signals(signum).name}, restoring working tree...]\n"
        )
        # SystemExit unwinds the stack so finally blocks run
        raise SystemExit(128 + signum)

    @staticmethod
    def _write_to_stderr(message: str) -> None:
        """
        Write a message to stderr without using Rich console.

        Safe to call from a signal handler.
        """
        sys.stderr.write(message)
        sys.stderr.flush()
