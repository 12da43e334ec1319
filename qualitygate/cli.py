"""qualitygate CLI - Main entry point and command registration hub."""
# ruff: noqa: E402 - Intentional lazy loading: commands imported after cli group definition

import click
from rich.table import Table

from qualitygate import __version__
from qualitygate.pipeline.ui import console


class VerboseGroup(click.Group):
    """Help system that lists registered commands by category."""

    def format_commands(self, ctx, formatter):
        """Suppress the default listing (the categorized one is in format_help)."""
        pass

    COMMAND_CATEGORIES = {
        "GATES": {
            "title": "GATES",
            "description": "Run the phase pipeline",
            "commands": ["check", "ship"],
            "command_meta": {
                "check": {"use_when": "Iterating on one component, category or test name"},
                "ship": {"run_when": "Before committing a release-ready change"},
            },
        },
        "INSPECTION": {
            "title": "INSPECTION",
            "description": "Look at inputs and results without running tools",
            "commands": ["classify", "report"],
            "command_meta": {
                "classify": {"use_when": "Checking what a pattern would run"},
                "report": {"use_when": "Re-reading the last coverage report"},
            },
        },
    }

    def format_help(self, ctx, formatter):
        """Generate Rich-styled categorized help."""
        super().format_help(ctx, formatter)

        registered = {
            name: cmd
            for name, cmd in self.commands.items()
            if not name.startswith("_") and not getattr(cmd, "hidden", False)
        }

        console.print()
        console.print("[bold]COMMANDS[/bold]")

        for category_data in self.COMMAND_CATEGORIES.values():
            console.print(f"\n[bold cyan]{category_data['title']}[/bold cyan]")
            console.print(f"[dim]{category_data['description']}[/dim]")

            table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
            table.add_column("Command", style="cmd", width=12)
            table.add_column("Description", style="white")
            table.add_column("When", style="dim", width=48)

            for cmd_name in category_data["commands"]:
                if cmd_name not in registered:
                    continue
                cmd = registered[cmd_name]

                first_line = (cmd.help or "").split("\n")[0].strip()
                period_idx = first_line.find(".")
                short_help = first_line[:period_idx] if period_idx > 0 else first_line

                cmd_meta = category_data.get("command_meta", {}).get(cmd_name, {})
                hint = ""
                if "use_when" in cmd_meta:
                    hint = f"USE: {cmd_meta['use_when']}"
                elif "run_when" in cmd_meta:
                    hint = f"RUN: {cmd_meta['run_when']}"

                table.add_row(cmd_name, short_help, hint)

            console.print(table)

        console.print()
        console.print("For detailed options: [cmd]qg <command> --help[/cmd]")


@click.group(cls=VerboseGroup)
@click.version_option(version=__version__, prog_name="qg")
@click.help_option("-h", "--help")
def cli():
    """qualitygate - phased quality gate for a Cargo workspace

    \b
    QUICK START:
      qg check core             # format, lint, tests of crate 'core'
      qg check integration      # only integration tests
      qg ship                   # full pre-release pipeline, then commit

    \b
    For detailed options: qg <command> --help"""
    pass


from qualitygate.commands.check import check
from qualitygate.commands.classify import classify_command
from qualitygate.commands.report import report
from qualitygate.commands.ship import ship

cli.add_command(check)
cli.add_command(ship)
cli.add_command(classify_command, name="classify")
cli.add_command(report)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
