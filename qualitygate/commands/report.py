"""Re-render the last coverage report."""

import json

import click

from qualitygate.config_runtime import load_runtime_config, resolve_path
from qualitygate.metrics.report import render_table
from qualitygate.pipeline.ui import console
from qualitygate.utils.error_handler import handle_exceptions
from qualitygate.utils.helpers import load_json_file


@click.command()
@handle_exceptions
@click.option("--root", default=".", help="Project root (Cargo workspace)")
@click.option("--json", "as_json", is_flag=True, help="Print the raw artifact")
def report(root, as_json):
    """Show the coverage report written by the last 'qg ship'."""
    config = load_runtime_config(root)
    path = resolve_path(config, root, "coverage_report")
    if not path.is_file():
        raise click.ClickException(f"No coverage report at {path} - run 'qg ship' first")

    artifact = load_json_file(path)
    if as_json:
        click.echo(json.dumps(artifact, indent=2))
        return

    console.print(render_table(artifact))
    below = artifact.get("belowThreshold") or []
    if below:
        console.print(f"[error]Below minimum:[/error] {', '.join(below)}")
    for rec in artifact.get("recommendations", []):
        console.print(f"  - {rec}")
    for note in artifact.get("footnotes", []):
        console.print(f"[dim]* {note}[/dim]")
