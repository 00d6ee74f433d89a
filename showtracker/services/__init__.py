"""Services for ShowTracker application."""

from showtracker.services.screenshot import ScreenshotAnalysisService
from showtracker.services.setlist_matcher import SetlistMatcher
from showtracker.services.setlistfm import SetlistFmClient
from showtracker.services.show_store import BeanieShowStore, InMemoryShowStore, ShowStore

__all__ = [
    "BeanieShowStore",
    "InMemoryShowStore",
    "ScreenshotAnalysisService",
    "SetlistFmClient",
    "SetlistMatcher",
    "ShowStore",
]
