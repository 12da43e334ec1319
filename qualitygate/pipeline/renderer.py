"""Rich-based live phase table."""

import sys
import time
from pathlib import Path
from typing import TextIO

from rich.console import Console, ConsoleOptions, RenderResult
from rich.live import Live
from rich.table import Table
from rich.text import Text

from qualitygate.utils.logging import restore_stderr_sink, swap_to_rich_sink

from .ui import QG_THEME

_STATUS_STYLE = {
    "running": "info",
    "passed": "success",
    "failed": "error",
    "warning": "warning",
    "skipped": "dim",
    "pending": "dim",
}


class DynamicTable:
    """Wrapper that builds a fresh table on each Rich render cycle.

    Rich calls __rich_console__ on each refresh (4x/second), so running
    phases show a ticking timer.
    """

    def __init__(self, renderer: "RichRenderer"):
        self.renderer = renderer

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        yield self.renderer._build_live_table()


class RichRenderer:
    """Live phase dashboard. Implements PipelineObserver.

    Concurrent sub-checks report one line each as they complete.
    """

    def __init__(self, quiet: bool = False, log_file: Path | None = None):
        self.quiet = quiet
        self.log_file: TextIO | None = None
        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            self.log_file = open(log_file, "w", encoding="utf-8", buffering=1)

        self.is_tty = sys.stdout.isatty()
        self.console = Console(theme=QG_THEME, force_terminal=self.is_tty)

        self._phases: dict[str, dict] = {}
        self._live: Live | None = None
        self._loguru_handler_id: int | None = None

    def _build_live_table(self) -> Table:
        table = Table(title="Quality Gate", expand=True)
        table.add_column("Phase", style="cyan", no_wrap=True)
        table.add_column("Status", width=12)
        table.add_column("Time", justify="right", width=8)
        table.add_column("Note", style="dim")

        now = time.time()
        for name, info in self._phases.items():
            status = info.get("status", "pending")
            if status == "running":
                time_str = f"{now - info.get('start_time', now):.1f}s"
            elif info.get("elapsed", 0) > 0:
                time_str = f"{info['elapsed']:.1f}s"
            else:
                time_str = "-"
            style = _STATUS_STYLE.get(status, "white")
            table.add_row(name, f"[{style}]{status}[/{style}]", time_str, info.get("note", ""))

        return table

    def _write(self, text: str, is_error: bool = False):
        """Central output handler."""
        if self.log_file:
            self.log_file.write(text + "\n")
            self.log_file.flush()

        if self.quiet and not is_error:
            return

        if self._live:
            # Print above the table; the table stays at the bottom
            self._live.console.print(text, style="bold red" if is_error else None, markup=False)
        else:
            print(text, file=sys.stderr if is_error else sys.stdout, flush=True)

    def start(self):
        """Start the live display (call before the pipeline runs)."""
        if self.is_tty and not self.quiet:
            self._live = Live(DynamicTable(self), refresh_per_second=4, console=self.console)
            self._live.__enter__()
            self._loguru_handler_id = swap_to_rich_sink(self.log_message)

    def stop(self):
        """Stop the live display. Call before prompting the user."""
        if self._live:
            self._live.__exit__(None, None, None)
            self._live = None
            restore_stderr_sink(self._loguru_handler_id)
            self._loguru_handler_id = None

    def log_message(self, message) -> None:
        """Loguru sink printing above the live table."""
        if self._live:
            self._live.console.print(Text.from_ansi(str(message).rstrip("\n")))
        else:
            sys.stderr.write(str(message))

    def close(self):
        self.stop()
        if self.log_file:
            self.log_file.close()
            self.log_file = None

    # PipelineObserver implementation

    def on_phase_start(self, name: str, index: int, total: int) -> None:
        self._phases[name] = {"status": "running", "start_time": time.time()}
        if not self._live:
            self._write(f"\n[Phase {index}/{total}] {name}")

    def on_phase_complete(self, name: str, elapsed: float) -> None:
        self._phases[name] = {"status": "passed", "elapsed": elapsed}
        if not self._live:
            self._write(f"[OK] {name} completed in {elapsed:.1f}s")

    def on_phase_failed(self, name: str, error: str, exit_code: int, aborting: bool) -> None:
        elapsed = time.time() - self._phases.get(name, {}).get("start_time", time.time())
        self._phases[name] = {
            "status": "failed" if aborting else "warning",
            "elapsed": elapsed,
            "note": f"exit {exit_code}",
        }
        label = "FAILED" if aborting else "WARN"
        self._write(f"[{label}] {name} (exit code {exit_code})", is_error=True)
        if error:
            truncated = error[:200] + "..." if len(error) > 200 else error
            self._write(f"  Error: {truncated}", is_error=True)

    def on_phase_skipped(self, name: str, reason: str) -> None:
        self._phases[name] = {"status": "skipped", "note": reason}
        if not self._live:
            self._write(f"[SKIP] {name} ({reason})")

    def on_log(self, message: str, is_error: bool = False) -> None:
        self._write(str(message) if message else "", is_error=is_error)

    def on_check_start(self, phase: str, check: str) -> None:
        self._phases.setdefault(phase, {"status": "running", "start_time": time.time()})

    def on_check_complete(self, phase: str, check: str, success: bool, elapsed: float) -> None:
        status = "OK" if success else "FAILED"
        self._write(f"  [{status}] {phase}/{check} ({elapsed:.1f}s)", is_error=not success)

