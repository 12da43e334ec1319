"""Show how a pattern would be dispatched, without running anything."""

import json
import sys

import click
from rich.markup import escape

from qualitygate.config_runtime import load_runtime_config
from qualitygate.dispatch import dispatch, known_components
from qualitygate.errors import InputValidationError
from qualitygate.pipeline.ui import console, print_error
from qualitygate.utils.error_handler import handle_exceptions
from qualitygate.utils.exit_codes import ExitCodes


@click.command("classify")
@handle_exceptions
@click.argument("pattern")
@click.option("--root", default=".", help="Project root (Cargo workspace)")
@click.option("--json", "as_json", is_flag=True, help="Print the dispatch request as JSON")
def classify_command(pattern, root, as_json):
    """Print the classification and test argv for PATTERN."""
    config = load_runtime_config(root)
    try:
        request = dispatch(pattern, config, known_components(config, root))
    except InputValidationError as e:
        print_error(escape(str(e)))
        sys.exit(ExitCodes.INVALID_INPUT)

    if as_json:
        click.echo(json.dumps(request.to_dict(), indent=2))
        return

    console.print(f"Classification: [info]{request.classification.tag}[/info]")
    console.print(f"Target:         {request.classification.value}")
    console.print(f"Invocation:     [cmd]{' '.join(request.argv)}[/cmd]")
