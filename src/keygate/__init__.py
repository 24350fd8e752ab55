"""keygate - API key authentication for SQLite-backed HTTP services."""

__version__ = "0.1.0"
