"""Delivery metrics (velocity, DORA) for sprint iterations."""

__version__ = "0.1.0"
