"""Common CLI option factories and helpers.

This module centralizes reusable CLI options to reduce duplication
and consolidate noqa comments for Typer's required function call pattern.

It also provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- Repository argument type aliases for consistent repo input handling
- `print_json`: JSON output for --format json
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from rich.console import Console

from github_release_stats.github.exceptions import GitHubClientError
from github_release_stats.github.fetch.enums import OutputFormat

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1. GitHub
    client errors additionally print a hint derived from the failure kind.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error

    Example:
        async def _fetch() -> ReleaseDataResult:
            async with ReleaseFetchOrchestrator.create() as orchestrator:
                return await orchestrator.fetch_release_data("facebook", "react")

        result = run_async_command(_fetch(), error_prefix="Fetch failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        # Re-raise deliberate exits (e.g., from validation helpers)
        raise
    except GitHubClientError as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        hint = failure_hint(e)
        if hint:
            console.print(f"  [dim]{hint}[/dim]")
        raise typer.Exit(1) from None
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


def failure_hint(error: GitHubClientError) -> str | None:
    """Suggest a next step for a client error."""
    reset_at = getattr(error, "reset_at", None)
    if error.retry_later and reset_at is not None:
        return f"Rate limit resets at {reset_at.strftime('%H:%M:%S UTC')}"
    if error.token_may_help:
        return "Provide a token with --token or the GITHUB_TOKEN environment variable"
    if error.retry_later:
        return "Try again later"
    return None


DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%z",
)


def parse_date(value: str | None, *, option: str) -> datetime | None:
    """Parse a --since/--until value; dates without an offset are UTC.

    Raises:
        typer.BadParameter: If no supported format matches
    """
    if value is None:
        return None

    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)

    raise typer.BadParameter(
        f"{value!r} is not a date; use YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS",
        param_hint=option,
    )


def print_json(data: dict[str, Any]) -> None:
    """Print a dict as JSON to stdout."""
    console.print_json(json.dumps(data, default=str))


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

TokenOption = Annotated[
    str | None,
    typer.Option(
        "--token",
        "-t",
        help="GitHub token for this request (overrides GITHUB_TOKEN)",
    ),
]

IncludeDraftsOption = Annotated[
    bool,
    typer.Option(
        "--include-drafts",
        help="Include draft releases",
    ),
]

ExcludePrereleasesOption = Annotated[
    bool,
    typer.Option(
        "--exclude-prereleases",
        help="Exclude prereleases",
    ),
]

SinceOption = Annotated[
    str | None,
    typer.Option(
        "--since",
        help="Only releases published at or after this time (UTC unless an offset is given)",
    ),
]

UntilOption = Annotated[
    str | None,
    typer.Option(
        "--until",
        help="Only releases published at or before this time (a bare date means midnight UTC)",
    ),
]

# -----------------------------------------------------------------------------
# Repository Argument Factories
# -----------------------------------------------------------------------------

RepoArgument = Annotated[
    str,
    typer.Argument(
        help="Repository as owner/name or GitHub URL (e.g., facebook/react)",
    ),
]
"""Required positional repository argument.

Usage:
    def fetch(repo: RepoArgument) -> None:
"""

ReleasesFileArgument = Annotated[
    Path,
    typer.Argument(
        help="JSON file holding a GitHub releases API response",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
]


# -----------------------------------------------------------------------------
# Repository Validation Helpers
# -----------------------------------------------------------------------------


def validate_repo(repo: str) -> tuple[str, str]:
    """Parse and validate a single repository string.

    Args:
        repo: Repository as owner/name or GitHub URL

    Returns:
        Tuple of (owner, name)

    Raises:
        typer.Exit(1): If format is invalid
    """
    from github_release_stats.schemas import parse_repo_string

    try:
        return parse_repo_string(repo)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
