"""API routers for ShowTracker."""

from showtracker.routers import import_router, setlists, shows

__all__ = ["shows", "import_router", "setlists"]
