"""CLI commands for computing iteration metrics."""

import asyncio
import json

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ..cache.store import IterationCacheStore
from ..errors import MetricsError
from ..metrics.orchestrator import MetricsOrchestrator
from ..metrics.record import AggregateRecord
from ..sources.files import JsonDirectorySource
from ..sources.provider import CachedIterationDataProvider, IterationDataProvider
from .cache import load_config, open_store
from .options import (
    CACHE_DIR_OPTION,
    DATA_DIR_OPTION,
    JSON_OPTION,
    NO_CACHE_OPTION,
    REFRESH_OPTION,
    SHOW_DECISIONS_OPTION,
    TTL_OPTION,
    VERBOSE_OPTION,
)

console = Console()

# (label, attribute, format) for each row of the metrics table
METRIC_ROWS = [
    ("Velocity (points)", "velocity_points", "{:g}"),
    ("Velocity (stories)", "velocity_stories", "{}"),
    ("Throughput", "throughput", "{}"),
    ("Cycle Time avg (days)", "cycle_time_avg", "{:.2f}"),
    ("Cycle Time p50 (days)", "cycle_time_p50", "{:.2f}"),
    ("Cycle Time p90 (days)", "cycle_time_p90", "{:.2f}"),
    ("Deployment Frequency (/day)", "deployment_frequency", "{:.3f}"),
    ("Lead Time avg (days)", "lead_time_avg", "{:.2f}"),
    ("Lead Time p50 (days)", "lead_time_p50", "{:.2f}"),
    ("Lead Time p90 (days)", "lead_time_p90", "{:.2f}"),
    ("MTTR (hours)", "mttr_avg", "{:.2f}"),
    ("Change Failure Rate (%)", "change_failure_rate", "{:.1f}"),
    ("Issues", "issue_count", "{}"),
    ("Merge Requests", "mr_count", "{}"),
    ("Deployments", "deployment_count", "{}"),
    ("Incidents", "incident_count", "{}"),
]


def _metrics_table(records: list[AggregateRecord]) -> Table:
    table = Table(title="Iteration Metrics")
    table.add_column("Metric", style="cyan")
    for record in records:
        table.add_column(record.iteration_title, justify="right", style="green")

    table.add_row(
        "Window",
        *(
            f"{record.start_date.date()} → {record.end_date.date()}"
            for record in records
        ),
    )
    for label, attribute, fmt in METRIC_ROWS:
        table.add_row(
            label, *(fmt.format(getattr(record, attribute)) for record in records)
        )
    return table


def _decisions_table(record: AggregateRecord) -> Table:
    table = Table(title=f"Incident Decisions: {record.iteration_title}")
    table.add_column("Incident", style="cyan")
    table.add_column("Included")
    table.add_column("Reason", style="yellow")
    for decision in record.incident_decisions:
        table.add_row(
            decision.incident_id,
            "[green]yes[/green]" if decision.included else "[red]no[/red]",
            decision.reason.value,
        )
    return table


def build_provider(
    data_dir: str, store: IterationCacheStore | None, refresh: bool = False
) -> IterationDataProvider:
    """Directory source, wrapped in the cache when a store is given."""
    source = JsonDirectorySource(data_dir)
    if store is None:
        return source
    return CachedIterationDataProvider(source, store, refresh=refresh)


async def _compute(
    orchestrator: MetricsOrchestrator, iteration_ids: list[str]
) -> list[AggregateRecord]:
    if len(iteration_ids) == 1:
        return [await orchestrator.compute_metrics(iteration_ids[0])]
    return await orchestrator.compute_metrics_batch(iteration_ids)


def compute(
    iteration_ids: list[str] = typer.Argument(
        ..., help="Iteration ids to compute metrics for"
    ),
    data_dir: str | None = DATA_DIR_OPTION,
    cache_dir: str | None = CACHE_DIR_OPTION,
    ttl: float | None = TTL_OPTION,
    no_cache: bool = NO_CACHE_OPTION,
    refresh: bool = REFRESH_OPTION,
    as_json: bool = JSON_OPTION,
    show_decisions: bool = SHOW_DECISIONS_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Compute delivery metrics for one or more iterations.

    Examples:
        iteration-metrics compute gid://gitlab/Iteration/123
        iteration-metrics compute 123 124 --json
        iteration-metrics compute 123 --show-decisions --no-cache
        iteration-metrics compute 123 --refresh
    """
    config = load_config(verbose)
    store = None if no_cache else open_store(config, cache_dir, ttl)
    provider = build_provider(data_dir or config.data_dir, store, refresh)
    orchestrator = MetricsOrchestrator(provider)

    try:
        records = asyncio.run(_compute(orchestrator, iteration_ids))
    except (MetricsError, ValidationError, ValueError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps([record.to_json() for record in records], indent=2))
        return

    console.print(_metrics_table(records))

    if show_decisions:
        for record in records:
            if record.incident_decisions:
                console.print(_decisions_table(record))
            else:
                console.print(f"No incidents recorded for {record.iteration_title}")


def list_iterations(
    data_dir: str | None = DATA_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List the iteration exports available in the data directory."""
    config = load_config(verbose)
    source = JsonDirectorySource(data_dir or config.data_dir)
    iterations = source.list_iterations()

    if not iterations:
        console.print(f"📭 No iteration exports in {source.data_dir}")
        return

    table = Table(title="Available Iterations")
    table.add_column("Iteration", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Start", style="green")
    table.add_column("Due", style="green")
    for iteration in iterations:
        table.add_row(
            iteration.id,
            iteration.title,
            str(iteration.start_date.date()),
            str(iteration.due_date.date()),
        )
    console.print(table)
    console.print(f"📊 {len(iterations)} iterations in {source.data_dir}")
