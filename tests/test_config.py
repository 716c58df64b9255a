"""Tests for environment configuration and logging setup."""

import logging

import pytest

from iteration_metrics.config import LOG_FORMAT, MetricsConfig, configure_logging


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "ITERATION_METRICS_DATA_DIR",
        "ITERATION_METRICS_CACHE_DIR",
        "ITERATION_METRICS_CACHE_TTL_HOURS",
        "ITERATION_METRICS_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestMetricsConfig:
    """Test MetricsConfig."""

    def test_defaults(self) -> None:
        config = MetricsConfig()
        assert config.data_dir == "data/iterations"
        assert config.cache_dir == "data/cache/iterations"
        assert config.cache_ttl_hours == 6.0
        assert config.log_level == "WARNING"
        config.validate()

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ITERATION_METRICS_DATA_DIR", "/exports")
        monkeypatch.setenv("ITERATION_METRICS_CACHE_DIR", "/cache")
        monkeypatch.setenv("ITERATION_METRICS_CACHE_TTL_HOURS", "0.5")
        monkeypatch.setenv("ITERATION_METRICS_LOG_LEVEL", "debug")

        config = MetricsConfig()
        assert config.data_dir == "/exports"
        assert config.cache_dir == "/cache"
        assert config.cache_ttl_hours == 0.5
        assert config.log_level == "DEBUG"
        config.validate()

    @pytest.mark.parametrize("ttl", ["0", "-3", "nan"])
    def test_non_positive_ttl(self, monkeypatch: pytest.MonkeyPatch, ttl: str) -> None:
        monkeypatch.setenv("ITERATION_METRICS_CACHE_TTL_HOURS", ttl)
        with pytest.raises(ValueError, match="must be positive"):
            MetricsConfig().validate()

    def test_non_numeric_ttl(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ITERATION_METRICS_CACHE_TTL_HOURS", "six")
        with pytest.raises(ValueError, match="must be a number"):
            MetricsConfig().validate()

    def test_all_problems_reported(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test every invalid setting appears in one error."""
        monkeypatch.setenv("ITERATION_METRICS_CACHE_TTL_HOURS", "six")
        monkeypatch.setenv("ITERATION_METRICS_LOG_LEVEL", "chatty")
        with pytest.raises(ValueError) as exc_info:
            MetricsConfig().validate()
        message = str(exc_info.value)
        assert message.startswith("Invalid configuration")
        assert "CACHE_TTL_HOURS" in message
        assert "CHATTY" in message


class TestConfigureLogging:
    """Test configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def installed(self) -> list[logging.Handler]:
        return [
            handler
            for handler in logging.getLogger().handlers
            if getattr(handler, "_iteration_metrics", False)
        ]

    def test_installs_one_handler(self) -> None:
        configure_logging("INFO")
        configure_logging("DEBUG")

        handlers = self.installed()
        assert len(handlers) == 1
        assert handlers[0].formatter._fmt == LOG_FORMAT
        assert logging.getLogger().level == logging.DEBUG

    def test_accepts_lowercase_and_numeric_levels(self) -> None:
        configure_logging("warning")
        assert logging.getLogger().level == logging.WARNING
        configure_logging(logging.ERROR)
        assert logging.getLogger().level == logging.ERROR
