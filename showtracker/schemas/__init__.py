"""Pydantic schemas for ShowTracker API."""

from showtracker.schemas.import_schemas import (
    CandidateResponse,
    ColumnMappingRequest,
    ImportProgressResponse,
    ImportResultResponse,
    ImportUploadResponse,
    PreviewResponse,
)
from showtracker.schemas.setlist import SetlistImportRequest, SetlistSearchResponse
from showtracker.schemas.show import (
    ShowCreate,
    ShowResponse,
    ShowUpdate,
    SongCreate,
    SongStatResponse,
    SongUpdate,
)

__all__ = [
    "ShowCreate",
    "ShowUpdate",
    "ShowResponse",
    "SongCreate",
    "SongUpdate",
    "SongStatResponse",
    "CandidateResponse",
    "ColumnMappingRequest",
    "ImportProgressResponse",
    "ImportResultResponse",
    "ImportUploadResponse",
    "PreviewResponse",
    "SetlistImportRequest",
    "SetlistSearchResponse",
]
