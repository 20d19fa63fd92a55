"""Release fetching and analysis commands."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import typer
from rich.table import Table

from github_release_stats.analytics import (
    NotApplicable,
    ReleaseStatistics,
    ReleaseVelocity,
    compute_release_statistics,
)
from github_release_stats.cli.common import (
    ExcludePrereleasesOption,
    IncludeDraftsOption,
    OutputFormatOption,
    ReleasesFileArgument,
    RepoArgument,
    SinceOption,
    TokenOption,
    UntilOption,
    console,
    parse_date,
    print_json,
    run_async_command,
    validate_repo,
)
from github_release_stats.github.fetch import (
    OutputFormat,
    ReleaseDataResult,
    ReleaseFetchOrchestrator,
    sanitize_release,
    validate_release_records,
)
from github_release_stats.github.rate_limit import RateLimitStatus
from github_release_stats.schemas import ReleaseQueryOptions

HISTOGRAM_MONTHS = 12
HISTOGRAM_WIDTH = 30


def fetch(
    repo: RepoArgument,
    token: TokenOption = None,
    include_drafts: IncludeDraftsOption = False,
    exclude_prereleases: ExcludePrereleasesOption = False,
    since: SinceOption = None,
    until: UntilOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Fetch a repository's releases and show release statistics.

    Examples:
        ghreleases fetch facebook/react
        ghreleases fetch https://github.com/facebook/react/releases
        ghreleases fetch facebook/react --exclude-prereleases --format json
        ghreleases fetch facebook/react --since 2024-01-01 --until 2024-06-30
        ghreleases -v fetch owner/private-repo --token ghp_xxx  # Debug logging
    """
    owner, name = validate_repo(repo)
    options = build_query_options(include_drafts, exclude_prereleases, since, until)

    async def _fetch() -> tuple[ReleaseDataResult, RateLimitStatus]:
        async with ReleaseFetchOrchestrator.create() as orchestrator:
            result = await orchestrator.fetch_release_data(
                owner, name, token=token, options=options
            )
            return result, orchestrator.rate_limit_status()

    result, status = run_async_command(_fetch(), error_prefix="Fetch failed")

    # JSON output
    if output_format == OutputFormat.JSON:
        data = result.to_dict(include_releases=False)
        data["rate_limit"] = status.model_dump(mode="json")
        print_json(data)
        return

    console.print(f"[bold]{result.full_name}[/bold]")
    _print_fetch_summary(result)
    render_statistics(result.statistics)
    if status.remaining is not None:
        console.print(f"\n[dim]Rate limit: {status.message}[/dim]")
        for advice in status.recommendations:
            console.print(f"  [yellow]{advice}[/yellow]")


def analyze(
    path: ReleasesFileArgument,
    include_drafts: IncludeDraftsOption = False,
    exclude_prereleases: ExcludePrereleasesOption = False,
    since: SinceOption = None,
    until: UntilOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Analyze a saved GitHub releases API response offline.

    Records are validated and sanitized exactly as in a live fetch.

    Examples:
        ghreleases analyze releases.json
        ghreleases analyze releases.json --format json
    """
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        console.print(f"[red]Error:[/red] Could not read {path}: {e}")
        raise typer.Exit(1) from None

    if not isinstance(records, list):
        console.print("[red]Error:[/red] Expected a JSON array of releases")
        raise typer.Exit(1)

    options = build_query_options(include_drafts, exclude_prereleases, since, until)
    now = datetime.now(UTC)
    valid, dropped = validate_release_records(records)
    releases = [sanitize_release(r) for r in valid if options.accepts(r, now)]
    statistics = compute_release_statistics(releases, as_of=now)

    # JSON output
    if output_format == OutputFormat.JSON:
        print_json(
            {
                "source": str(path),
                "dropped_records": dropped,
                "statistics": statistics.to_dict(),
            }
        )
        return

    console.print(f"[bold]{path.name}[/bold]")
    if dropped:
        console.print(f"[yellow]Dropped {dropped} malformed record(s)[/yellow]")
    render_statistics(statistics)


def build_query_options(
    include_drafts: bool,
    exclude_prereleases: bool,
    since: str | None,
    until: str | None,
) -> ReleaseQueryOptions:
    """Turn filter flags into query options, exiting on an inverted range."""
    published_after = parse_date(since, option="--since")
    published_before = parse_date(until, option="--until")
    try:
        return ReleaseQueryOptions(
            include_drafts=include_drafts,
            include_prereleases=not exclude_prereleases,
            published_after=published_after,
            published_before=published_before,
        )
    except ValueError:
        console.print("[red]Error:[/red] --since must not be later than --until")
        raise typer.Exit(1) from None


def _print_fetch_summary(result: ReleaseDataResult) -> None:
    source = "cache" if result.from_cache else f"{result.pages_fetched} page(s)"
    console.print(f"[dim]Source: {source}[/dim]")
    if result.truncated:
        console.print("[yellow]Release history truncated at the pagination limit[/yellow]")
    if result.dropped_records:
        console.print(f"[yellow]Dropped {result.dropped_records} malformed record(s)[/yellow]")


def _fmt(value: Any, suffix: str = "") -> str:
    if isinstance(value, NotApplicable):
        return value.value
    if isinstance(value, float):
        return f"{value:.1f}{suffix}"
    return f"{value}{suffix}"


def _fmt_velocity(velocity: ReleaseVelocity | NotApplicable) -> str:
    if isinstance(velocity, NotApplicable):
        return velocity.value
    return (
        f"{velocity.trend.value} ({velocity.confidence:.0%} confidence; "
        f"{velocity.recent_count} vs {velocity.previous_count} in prior 3 months)"
    )


def render_statistics(statistics: ReleaseStatistics) -> None:
    """Print statistics, the recent monthly histogram and major versions."""
    if statistics.total_releases == 0:
        console.print("No releases found.")
        return

    table = Table(title="Release statistics", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    first = statistics.first_release_at
    last = statistics.last_release_at
    table.add_row("Total releases", str(statistics.total_releases))
    table.add_row(
        "Final / prerelease / draft",
        f"{statistics.final_count} / {statistics.prerelease_count} / {statistics.draft_count}",
    )
    table.add_row(
        "First release",
        first.strftime("%Y-%m-%d") if not isinstance(first, NotApplicable) else first.value,
    )
    table.add_row(
        "Latest release",
        last.strftime("%Y-%m-%d") if not isinstance(last, NotApplicable) else last.value,
    )
    table.add_row("Mean interval", _fmt(statistics.mean_interval_days, " days"))
    table.add_row("Median interval", _fmt(statistics.intervals.median_days, " days"))
    table.add_row("Consistency", _fmt(statistics.consistency))
    table.add_row("Releases per month", _fmt(statistics.releases_per_month))
    table.add_row("Velocity", _fmt_velocity(statistics.velocity))
    active = statistics.most_active_period
    table.add_row(
        "Most active month",
        active.value
        if isinstance(active, NotApplicable)
        else f"{active.period} ({active.count}; {active.monthly_average:.2f}/month on average)",
    )
    table.add_row("Days since last release", _fmt(statistics.days_since_last_release))
    health = statistics.health
    table.add_row("Health", f"{health.status.value} ({health.score}/100): {health.description}")
    console.print(table)

    buckets = statistics.monthly_histogram[:HISTOGRAM_MONTHS]
    peak = max((b.count for b in buckets), default=0)
    if buckets:
        console.print("\n[bold]Recent months[/bold]")
    for bucket in buckets:
        width = round(bucket.count / peak * HISTOGRAM_WIDTH) if peak else 0
        line = f"  {bucket.period} {'█' * width} {bucket.count}"
        if bucket.major_versions:
            line += f"  [magenta]{', '.join(bucket.major_versions)}[/magenta]"
        console.print(line)

    if statistics.major_versions:
        console.print("\n[bold]Major versions[/bold]")
        for marker in statistics.major_versions:
            console.print(
                f"  {marker.tag_name} (v{marker.major}) - {marker.published_at:%Y-%m-%d}"
            )
