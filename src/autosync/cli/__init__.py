"""
Autosync CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from autosync import __version__
from autosync.cli import push

# Create the main Typer app
app = typer.Typer(
    name="autosync",
    help="Commit and push CI changes to a shared branch, surviving concurrent pushes",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        envvar="RUNNER_DEBUG",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Autosync - commit and push from CI without losing the push race.

    Examples:
        autosync push -m "Update generated docs"
        autosync push -m "Refresh data" -p "data/*.json" --max-retries 5
        autosync check -m "Update generated docs"

    Every push option can also be set through the matching GitHub Actions
    input variable (INPUT_COMMIT_MESSAGE, INPUT_FILE_PATTERN, ...).
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    ctx.obj = {"debug": debug}


app.command(name="push")(push.push)
app.command(name="check")(push.check)


@app.command(name="version")
def version() -> None:
    """Show autosync version and exit."""
    console.print(f"autosync version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "main", "cli_main"]
