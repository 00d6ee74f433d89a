"""ShowTracker - personal concert log with setlist matching and history import."""

__version__ = "0.4.0"
