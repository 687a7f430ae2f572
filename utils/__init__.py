"""Shared helpers: input validation and performance gauges."""
