"""Periodic stock quote poller that writes CSV snapshots."""

__version__ = "0.1.0"
