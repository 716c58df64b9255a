"""Shared helpers for timestamps and file names."""
