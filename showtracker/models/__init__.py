"""Domain and MongoDB document models for ShowTracker."""

from showtracker.models.import_batch import (
    CandidateRecord,
    ImportProgress,
    ImportResult,
    ImportStatus,
    InvalidTransitionError,
    PreviewSummary,
)
from showtracker.models.show import Show, ShowDocument, Song

__all__ = [
    # Shows
    "Show",
    "ShowDocument",
    "Song",
    # Import
    "CandidateRecord",
    "ImportProgress",
    "ImportResult",
    "ImportStatus",
    "InvalidTransitionError",
    "PreviewSummary",
]
