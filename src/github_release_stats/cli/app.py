"""Main CLI application for GitHub Release Stats."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from github_release_stats import __version__
from github_release_stats.cli import releases as releases_cmd
from github_release_stats.config import get_settings
from github_release_stats.logging import setup_logging

app = typer.Typer(
    name="ghreleases",
    help="Release history and cadence statistics for GitHub repositories.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ghreleases version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """GitHub Release Stats - fetch releases and analyze release cadence."""
    settings = get_settings()
    log_config = settings.logging

    # Setup logging with CLI overrides
    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


# Register commands
app.command("fetch")(releases_cmd.fetch)
app.command("analyze")(releases_cmd.analyze)


if __name__ == "__main__":
    app()
