"""Show and Song models, plus the MongoDB document used to persist shows."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field


def new_song_id() -> str:
    """Generate an identifier for a setlist entry."""
    return uuid.uuid4().hex


class Song(BaseModel):
    """One entry of a show's setlist, in performance order."""

    id: str = Field(default_factory=new_song_id)
    name: str
    cover: Optional[str] = None  # "<original artist> cover"
    set_break: Optional[str] = None  # "Main Set", "Set 2", "Encore", ... on first song of a block
    rating: Optional[int] = Field(default=None, ge=1, le=10)
    comment: Optional[str] = None


class ShowBase(BaseModel):
    """Fields shared by the domain Show and its stored document."""

    artist: str
    venue: str
    date: str  # Canonical YYYY-MM-DD
    city: str = ""
    country: str = ""
    tour: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=10)
    comment: str = ""
    # True unless the setlist came from the catalog
    is_manual: bool = True
    setlistfm_id: Optional[str] = None
    setlist: list[Song] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Show(ShowBase):
    """A show in a user's collection, as seen by the import core and the API."""

    id: Optional[str] = None

    def __repr__(self) -> str:
        return f"<Show(id={self.id}, artist={self.artist}, date={self.date})>"


SHOW_FIELDS = frozenset(ShowBase.model_fields)


class ShowDocument(Document, ShowBase):
    """MongoDB document for a show."""

    owner_id: Optional[Indexed(str)] = None

    class Settings:
        name = "shows"
        indexes = [
            "artist",
            "date",
            [("owner_id", 1), ("date", -1)],
        ]

    def to_show(self) -> Show:
        """Convert to the storage-independent Show model."""
        return Show(id=str(self.id), **self.model_dump(include=set(SHOW_FIELDS)))
