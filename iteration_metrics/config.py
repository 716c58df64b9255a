"""Configuration for the iteration-metrics CLI."""

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

DEFAULT_DATA_DIR = "data/iterations"
DEFAULT_CACHE_DIR = "data/cache/iterations"
DEFAULT_CACHE_TTL_HOURS = "6"
DEFAULT_LOG_LEVEL = "WARNING"


class MetricsConfig:
    """Configuration read from ITERATION_METRICS_* environment variables."""

    def __init__(self) -> None:
        """Initialize metrics configuration from environment variables."""
        self.data_dir: str = os.getenv("ITERATION_METRICS_DATA_DIR", DEFAULT_DATA_DIR)
        self.cache_dir: str = os.getenv(
            "ITERATION_METRICS_CACHE_DIR", DEFAULT_CACHE_DIR
        )
        self.cache_ttl_raw: str = os.getenv(
            "ITERATION_METRICS_CACHE_TTL_HOURS", DEFAULT_CACHE_TTL_HOURS
        )
        self.log_level: str = os.getenv(
            "ITERATION_METRICS_LOG_LEVEL", DEFAULT_LOG_LEVEL
        ).upper()

    @property
    def cache_ttl_hours(self) -> float:
        """Cache TTL in hours.

        Raises:
            ValueError: If the configured value is not a number
        """
        return float(self.cache_ttl_raw)

    def validate(self) -> None:
        """Validate configuration and raise error if invalid."""
        problems = []
        try:
            ttl = self.cache_ttl_hours
        except ValueError:
            problems.append(
                f"ITERATION_METRICS_CACHE_TTL_HOURS must be a number, "
                f"got {self.cache_ttl_raw!r}"
            )
        else:
            if not ttl > 0:
                problems.append(
                    f"ITERATION_METRICS_CACHE_TTL_HOURS must be positive, got {ttl}"
                )

        if not isinstance(logging.getLevelName(self.log_level), int):
            problems.append(
                f"ITERATION_METRICS_LOG_LEVEL is not a logging level: {self.log_level}"
            )

        if problems:
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")


def configure_logging(level: str | int = DEFAULT_LOG_LEVEL) -> None:
    """Send log records to stderr with the standard format.

    Safe to call more than once: the handler installed by an earlier call is
    replaced, so it always writes to the current ``sys.stderr``.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_iteration_metrics", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._iteration_metrics = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
