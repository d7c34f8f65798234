"""Lacrosse stats ingestion, identity resolution and leaderboards."""

__version__ = "0.3.0"
