"""Command line tools for ShowTracker."""
