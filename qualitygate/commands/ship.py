"""Run the full pre-release pipeline and the confirmation gate."""

import sys

import click

from qualitygate.pipeline.ui import console
from qualitygate.utils.error_handler import handle_exceptions
from qualitygate.utils.exit_codes import ExitCodes


@click.command()
@handle_exceptions
@click.argument("pattern", required=False)
@click.option("--root", default=".", help="Project root (Cargo workspace)")
@click.option("--yes", "-y", is_flag=True, help="Pre-approve the confirmation gate")
@click.option("--fix", is_flag=True, help="Let the formatter and linter rewrite files")
@click.option("--skip-build", is_flag=True, help="Skip the build phase")
@click.option("--quiet", is_flag=True, help="Minimal output")
def ship(pattern, root, yes, fix, skip_build, quiet):
    """Run every phase, then ask before committing.

    Phases run strictly in order. Abort-on-failure phases (format, lint,
    build, test, stage) halt the run; continue-on-failure phases
    (preflight, coverage, audit, docs) are reported as warnings.
    Code phases are skipped when only documentation changed.

    An optional PATTERN scopes the test phase the same way 'qg check' does.

    Output Files:
      .qg/run_report.json         # Phase results, warnings, metrics
      .qg/coverage_report.json    # Per-component coverage
      .qg/pipeline.log            # Execution trace

    Exit Codes:
      0 = Passed (possibly with warnings) and committed
      1 = Pattern rejected
      2 = A gating phase or the commit failed
      3 = Confirmation declined (staged files are kept)"""
    from qualitygate.pipelines import run

    try:
        exit_code = run(
            pattern,
            "full",
            root=root,
            yes=yes,
            fix=fix,
            skip_build=skip_build,
            quiet=quiet,
        )
    except KeyboardInterrupt:
        console.print("\n[bold red][INFO] Pipeline stopped by user.[/bold red]")
        sys.exit(130)

    if exit_code != ExitCodes.SUCCESS:
        sys.exit(exit_code)
