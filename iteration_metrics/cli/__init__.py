"""Command-line interface for iteration metrics."""
