"""CLI commands for inspecting and clearing the iteration cache."""

import json

import typer
from rich.console import Console
from rich.table import Table

from ..cache.backends import FileCacheBackend
from ..cache.status import build_cache_status
from ..cache.store import IterationCacheStore, StalenessStatus
from ..config import MetricsConfig, configure_logging
from ..errors import MetricsError
from ..utils.date_parser import format_timestamp
from .options import CACHE_DIR_OPTION, JSON_OPTION, TTL_OPTION, VERBOSE_OPTION

console = Console()
app = typer.Typer(
    help="Inspect and clear cached iteration data",
    context_settings={"help_option_names": ["-h", "--help"]},
)

STATUS_STYLES = {
    StalenessStatus.FRESH: "green",
    StalenessStatus.AGING: "yellow",
    StalenessStatus.STALE: "red",
}


def load_config(verbose: bool = False) -> MetricsConfig:
    """Read and validate environment configuration, then set up logging.

    Raises:
        typer.Exit: If the configuration is invalid
    """
    config = MetricsConfig()
    try:
        config.validate()
    except ValueError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    configure_logging("DEBUG" if verbose else config.log_level)
    return config


def open_store(
    config: MetricsConfig, cache_dir: str | None, ttl: float | None
) -> IterationCacheStore:
    """Build a file-backed cache store, command-line values taking precedence.

    Raises:
        typer.Exit: If the store cannot be created
    """
    try:
        backend = FileCacheBackend(cache_dir or config.cache_dir)
        return IterationCacheStore(
            backend, ttl_hours=config.cache_ttl_hours if ttl is None else ttl
        )
    except (OSError, ValueError) as e:
        console.print(f"[red]❌ Cannot open cache: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def status(
    cache_dir: str | None = CACHE_DIR_OPTION,
    ttl: float | None = TTL_OPTION,
    as_json: bool = JSON_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show age and staleness of every cached iteration."""
    config = load_config(verbose)
    store = open_store(config, cache_dir, ttl)

    try:
        report = build_cache_status(store)
    except MetricsError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(report.to_json(), indent=2))
        return

    summary_table = Table(title="Cache Summary")
    summary_table.add_column("Metric", style="cyan")
    summary_table.add_column("Value", style="green")
    summary_table.add_row("Cache TTL (hours)", f"{report.cache_ttl:g}")
    summary_table.add_row("Cached Iterations", str(report.total_cached_iterations))
    summary_table.add_row(
        "Last Updated",
        format_timestamp(report.global_last_updated)
        if report.global_last_updated
        else "never",
    )
    console.print(summary_table)

    if not report.iterations:
        console.print("📭 Cache is empty")
        return

    table = Table(title="Cached Iterations")
    table.add_column("Iteration", style="cyan")
    table.add_column("Last Fetched", style="white")
    table.add_column("Age (h)", justify="right", style="yellow")
    table.add_column("Status")
    table.add_column("Size (bytes)", justify="right", style="magenta")

    for item in report.iterations:
        style = STATUS_STYLES[item.status]
        table.add_row(
            item.key,
            format_timestamp(item.last_fetched_at),
            f"{item.age_hours:.2f}",
            f"[{style}]{item.status.value}[/{style}]",
            str(item.size_bytes),
        )

    console.print(table)


@app.command()
def clear(
    iteration_id: str | None = typer.Argument(
        None, help="Iteration to remove from the cache"
    ),
    all_entries: bool = typer.Option(
        False, "--all", help="Remove every cached iteration"
    ),
    cache_dir: str | None = CACHE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Remove one cached iteration, or all of them with --all."""
    if bool(iteration_id) == all_entries:
        console.print("[red]❌ Specify either an ITERATION_ID or --all[/red]")
        raise typer.Exit(1)

    config = load_config(verbose)
    store = open_store(config, cache_dir, None)

    try:
        if iteration_id:
            store.clear(iteration_id)
            console.print(
                f"[green]✓[/green] Cleared cache for iteration {iteration_id}"
            )
        else:
            store.clear_all()
            console.print("[green]✓[/green] Cleared all cached iterations")
    except MetricsError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
