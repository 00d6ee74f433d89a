"""Pydantic schemas for setlist.fm search and import."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class SetlistSearchResult(BaseModel):
    """A catalog setlist summarized for a search result list."""

    id: str
    artist: str
    venue: str
    city: str
    country: str
    date: Optional[str]
    tour: Optional[str] = None
    song_count: int = 0


class SetlistSearchResponse(BaseModel):
    results: list[SetlistSearchResult]
    total: int
    page: int
    items_per_page: int


class SetlistImportRequest(BaseModel):
    """Import a catalog setlist as a show, by id or by the search result payload."""

    setlist_id: Optional[str] = Field(None, description="setlist.fm setlist id")
    setlist: Optional[dict[str, Any]] = Field(None, description="Raw setlist.fm entry")
