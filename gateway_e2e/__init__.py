"""Fixtures and helpers for the API gateway end-to-end suite."""

__version__ = "1.0.0"
