"""Tamper-evident audit-pack generation for time-tracking records."""

__version__ = "0.1.0"
