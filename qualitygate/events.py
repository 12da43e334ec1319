"""Event system for pipeline observers.

Decouples pipeline execution from presentation logic.
Observers must handle their own exceptions.
"""

import sys
from typing import Protocol


class PipelineObserver(Protocol):
    """Observer interface for pipeline events."""

    def on_phase_start(self, name: str, index: int, total: int) -> None:
        """Called when a phase begins running."""
        ...

    def on_phase_complete(self, name: str, elapsed: float) -> None:
        """Called when a phase passes."""
        ...

    def on_phase_failed(self, name: str, error: str, exit_code: int, aborting: bool) -> None:
        """Called when a phase fails. aborting is True for abort-on-failure phases."""
        ...

    def on_phase_skipped(self, name: str, reason: str) -> None:
        """Called when a phase is skipped by policy."""
        ...

    def on_log(self, message: str, is_error: bool = False) -> None:
        """Called for generic log messages (e.g., from sub-checks)."""
        ...

    def on_check_start(self, phase: str, check: str) -> None:
        """Called when a sub-check of a concurrent phase starts."""
        ...

    def on_check_complete(self, phase: str, check: str, success: bool, elapsed: float) -> None:
        """Called when a sub-check finishes."""
        ...


class ConsoleLogger:
    """ASCII-safe console logger (Windows CP1252 compatible).

    This is the DEFAULT observer for non-interactive runs.
    """

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def on_phase_start(self, name: str, index: int, total: int) -> None:
        if not self.quiet:
            print(f"\n[Phase {index}/{total}] {name}", flush=True)

    def on_phase_complete(self, name: str, elapsed: float) -> None:
        if not self.quiet:
            print(f"[OK] {name} completed in {elapsed:.1f}s", flush=True)

    def on_phase_failed(self, name: str, error: str, exit_code: int, aborting: bool) -> None:
        # Errors print even in quiet mode
        label = "FAILED" if aborting else "WARN"
        print(f"[{label}] {name} failed (exit code {exit_code})", file=sys.stderr, flush=True)
        if error:
            display_err = error.strip()[:200]
            if len(error) > 200:
                display_err += "..."
            print(f"  Error: {display_err}", file=sys.stderr, flush=True)

    def on_phase_skipped(self, name: str, reason: str) -> None:
        if not self.quiet:
            print(f"[SKIP] {name} ({reason})", flush=True)

    def on_log(self, message: str, is_error: bool = False) -> None:
        if not self.quiet or is_error:
            msg = str(message) if message is not None else ""
            print(msg, file=sys.stderr if is_error else sys.stdout, flush=True)

    def on_check_start(self, phase: str, check: str) -> None:
        if not self.quiet:
            try:
                print(f"[START] {phase}/{check}...", flush=True)
            except OSError:
                pass  # Windows console buffer issue - ignore

    def on_check_complete(self, phase: str, check: str, success: bool, elapsed: float) -> None:
        if not self.quiet:
            status = "COMPLETED" if success else "FAILED"
            try:
                print(f"[{status}] {phase}/{check} ({elapsed:.1f}s)", flush=True)
            except OSError:
                pass  # Windows console buffer issue - ignore
