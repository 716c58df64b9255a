"""Main CLI entry point."""

import typer
from dotenv import load_dotenv
from rich.console import Console

from . import cache
from .compute import compute, list_iterations

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(
    name="iteration-metrics",
    help="Delivery metrics for sprint iterations",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


app.command(name="compute", context_settings={"help_option_names": ["-h", "--help"]})(
    compute
)
app.command(
    name="iterations", context_settings={"help_option_names": ["-h", "--help"]}
)(list_iterations)
app.add_typer(cache.app, name="cache")


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def version() -> None:
    """Show version information."""
    from iteration_metrics import __version__

    console.print(f"Iteration Metrics v{__version__}")


if __name__ == "__main__":
    app()
