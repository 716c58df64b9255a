"""Standardized CLI option definitions shared across commands.

Options default to None so that unset values fall back to the
ITERATION_METRICS_* environment configuration.
"""

import typer

# Location options
DATA_DIR_OPTION = typer.Option(
    None,
    "--data-dir",
    "-d",
    help="Directory of iteration exports (default: ITERATION_METRICS_DATA_DIR)",
)

CACHE_DIR_OPTION = typer.Option(
    None,
    "--cache-dir",
    help="Cache directory (default: ITERATION_METRICS_CACHE_DIR)",
)

# Cache behavior options
TTL_OPTION = typer.Option(
    None,
    "--ttl",
    help="Cache time-to-live in hours (default: ITERATION_METRICS_CACHE_TTL_HOURS)",
)

NO_CACHE_OPTION = typer.Option(
    False, "--no-cache", help="Read exports directly, bypassing the cache"
)

REFRESH_OPTION = typer.Option(
    False, "--refresh", help="Re-read exports and replace their cached entries"
)

# Output options
JSON_OPTION = typer.Option(False, "--json", help="Print JSON instead of tables")

SHOW_DECISIONS_OPTION = typer.Option(
    False,
    "--show-decisions",
    help="List every incident with the reason it was included or excluded",
)

VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
