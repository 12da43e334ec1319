"""Run the targeted gate: format, lint and scoped tests."""

import sys

import click

from qualitygate.pipeline.ui import console
from qualitygate.utils.error_handler import handle_exceptions
from qualitygate.utils.exit_codes import ExitCodes


@click.command()
@handle_exceptions
@click.argument("pattern")
@click.option("--root", default=".", help="Project root (Cargo workspace)")
@click.option("--quiet", is_flag=True, help="Minimal output")
def check(pattern, root, quiet):
    """Run format, lint and tests scoped by PATTERN.

    PATTERN is classified in this order:
      1. a known component (workspace crate)  -> cargo test -p <component>
      2. a category keyword (unit, integration, doc, examples, benches)
      3. anything else                        -> test name filter

    Patterns containing shell metacharacters, whitespace or a leading '-'
    are rejected before any tool runs.

    Examples:
      qg check prtip-core
      qg check integration
      qg check tcp_connect_timeout

    Exit Codes:
      0 = All gating phases passed (possibly with warnings)
      1 = Pattern rejected
      2 = A gating phase failed"""
    from qualitygate.pipelines import run

    try:
        exit_code = run(pattern, "targeted", root=root, quiet=quiet)
    except KeyboardInterrupt:
        console.print("\n[bold red][INFO] Pipeline stopped by user.[/bold red]")
        sys.exit(130)

    if exit_code != ExitCodes.SUCCESS:
        sys.exit(exit_code)
