"""Versioned plan aggregates with event-driven projections."""

__version__ = "0.1.0"
