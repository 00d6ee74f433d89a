"""Pydantic schemas for shows, songs and song statistics."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from showtracker.services.import_service.dates import normalize_date


def _canonical_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = normalize_date(value)
    if normalized is None:
        raise ValueError(f"Invalid date '{value}'")
    return normalized


class SongCreate(BaseModel):
    """Schema for adding a song to a show's setlist."""

    name: str = Field(..., min_length=1, max_length=255)
    cover: Optional[str] = Field(None, max_length=255)
    set_break: Optional[str] = Field(None, max_length=50)
    rating: Optional[int] = Field(None, ge=1, le=10)
    comment: Optional[str] = Field(None, max_length=2000)


class SongUpdate(BaseModel):
    """Schema for rating or commenting on a song."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    rating: Optional[int] = Field(None, ge=1, le=10)
    comment: Optional[str] = Field(None, max_length=2000)


class SongResponse(BaseModel):
    id: str
    name: str
    cover: Optional[str] = None
    set_break: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ShowCreate(BaseModel):
    """Schema for creating a show by hand."""

    artist: str = Field(..., min_length=1, max_length=255)
    venue: str = Field(..., min_length=1, max_length=255)
    date: str = Field(..., description="Any date format the importer accepts; stored as YYYY-MM-DD")
    city: str = Field("", max_length=255)
    country: str = Field("", max_length=255)
    tour: Optional[str] = Field(None, max_length=255)
    rating: Optional[int] = Field(None, ge=1, le=10)
    comment: str = Field("", max_length=5000)
    setlist: list[SongCreate] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def normalize_show_date(cls, v: Optional[str]) -> Optional[str]:
        """Store every date as YYYY-MM-DD."""
        return _canonical_date(v)


class ShowUpdate(BaseModel):
    """Schema for editing show metadata, rating and comment."""

    artist: Optional[str] = Field(None, min_length=1, max_length=255)
    venue: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[str] = None
    city: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=255)
    tour: Optional[str] = Field(None, max_length=255)
    rating: Optional[int] = Field(None, ge=1, le=10)
    comment: Optional[str] = Field(None, max_length=5000)

    @field_validator("date")
    @classmethod
    def normalize_show_date(cls, v: Optional[str]) -> Optional[str]:
        """Store every date as YYYY-MM-DD."""
        return _canonical_date(v)


class ShowResponse(BaseModel):
    """A show as returned by the API."""

    id: str
    artist: str
    venue: str
    date: str
    city: str
    country: str
    tour: Optional[str]
    rating: Optional[int]
    comment: str
    is_manual: bool
    setlistfm_id: Optional[str]
    setlist: list[SongResponse]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SetlistMatchResponse(BaseModel):
    """Outcome of matching one show against the setlist catalog."""

    matched: bool
    show: ShowResponse


class SongHearingResponse(BaseModel):
    date: str
    artist: str
    venue: str
    rating: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class SongStatResponse(BaseModel):
    """How often a song was heard, and how it was rated."""

    name: str
    count: int
    avg_rating: Optional[float] = None
    shows: list[SongHearingResponse]

    model_config = ConfigDict(from_attributes=True)


class CollectionSummaryResponse(BaseModel):
    """Collection totals and highlights, with a ready-to-share text."""

    total_shows: int
    total_songs: int
    top_songs: list[SongStatResponse]
    recent_shows: list[ShowResponse]
    share_text: str
