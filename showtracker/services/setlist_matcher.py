"""Setlist matching: find a show's setlist in the setlist.fm catalog.

A lookup searches by artist and year, page by page, for an entry whose event
date equals the show date. If the artist name as typed finds nothing, the
lookup retries with "&" spelled out as "and", then with a leading "The "
toggled. Catalog requests inside one lookup are paced a fixed 0.3 s apart.

Lookups never raise: failures are logged and reported as no match.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Protocol

from showtracker.models.show import Show, Song
from showtracker.services.import_service.dates import setlistfm_to_canonical
from showtracker.services.retry import SleepFunc
from showtracker.services.setlistfm import SetlistPage

logger = logging.getLogger(__name__)

REQUEST_DELAY_SECONDS = 0.3
DEFAULT_MAX_PAGES = 3
DEFAULT_PAGE_SIZE = 20

MAIN_SET_LABEL = "Main Set"
ENCORE_LABEL = "Encore"

_AMPERSAND_RE = re.compile(r"\s*&\s*")
_THE_PREFIX_RE = re.compile(r"^the\s+", re.IGNORECASE)


class SetlistGateway(Protocol):
    """The part of the setlist.fm client the matcher needs."""

    async def search_setlists(
        self,
        artist_name: str | None = None,
        artist_mbid: str | None = None,
        year: int | None = None,
        venue_name: str | None = None,
        city_name: str | None = None,
        page: int = 1,
    ) -> SetlistPage: ...


@dataclass
class SetlistMatchResult:
    """A matched setlist, flattened into songs."""

    songs: list[Song]
    setlistfm_id: Optional[str]
    tour: Optional[str]
    artist: str = ""


def toggle_the_prefix(name: str) -> str:
    """Strip a leading "The " if present, otherwise add one."""
    stripped = _THE_PREFIX_RE.sub("", name, count=1)
    if stripped != name:
        return stripped
    return f"The {name}"


def artist_name_variants(name: str) -> list[str]:
    """Artist names to try, in order: as given, "&" -> "and", "The " toggled."""
    name = name.strip()
    variants = [name]
    if "&" in name:
        variants.append(_AMPERSAND_RE.sub(" and ", name).strip())
    variants.append(toggle_the_prefix(name))

    unique: list[str] = []
    for variant in variants:
        if variant and variant not in unique:
            unique.append(variant)
    return unique


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _as_dict(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Malformed setlist: {what} must be an object")
    return value


def set_break_label(position: int, encore_number: int | None) -> str:
    """Label for the first song of a set block.

    Args:
        position: 1-based position of the set within the show.
        encore_number: 1-based count among encore sets, or None for a regular set.
    """
    if encore_number is not None:
        return ENCORE_LABEL if encore_number == 1 else f"{ENCORE_LABEL} {encore_number}"
    return MAIN_SET_LABEL if position == 1 else f"Set {position}"


def extract_songs(setlist: dict[str, Any]) -> list[Song]:
    """Flatten a catalog setlist's nested sets into an ordered song list.

    The first song of every set block carries the block's label; covers are
    annotated "<original artist> cover". Songs without a name are dropped.

    Raises:
        ValueError: If a set, song or cover entry is not an object.
    """
    songs: list[Song] = []
    encore_count = 0

    sets = _as_list(_as_dict(setlist.get("sets"), "sets").get("set"))
    for position, set_block in enumerate(sets, start=1):
        set_block = _as_dict(set_block, "set")
        encore_number = None
        if set_block.get("encore"):
            encore_count += 1
            encore_number = encore_count
        label: Optional[str] = set_break_label(position, encore_number)

        for entry in _as_list(set_block.get("song")):
            entry = _as_dict(entry, "song")
            name = str(entry.get("name") or "").strip()
            if not name:
                continue
            cover = _as_dict(entry.get("cover"), "cover")
            songs.append(
                Song(
                    name=name,
                    cover=f"{cover['name']} cover" if cover.get("name") else None,
                    set_break=label,
                )
            )
            label = None

    return songs


def setlist_to_show(setlist: dict[str, Any]) -> Show:
    """Convert a whole catalog setlist into a Show (direct search import).

    Raises:
        ValueError: If the entry has no artist, venue or readable event date,
            or any nested part of it is malformed.
    """
    venue = _as_dict(setlist.get("venue"), "venue")
    city = _as_dict(venue.get("city"), "city")
    country = _as_dict(city.get("country"), "country")
    tour = _as_dict(setlist.get("tour"), "tour")
    artist = _as_dict(setlist.get("artist"), "artist").get("name") or ""
    show_date = setlistfm_to_canonical(setlist.get("eventDate"))

    if not artist or not venue.get("name") or show_date is None:
        raise ValueError("Setlist is missing artist, venue or event date")

    setlistfm_id = setlist.get("id")
    return Show(
        artist=artist,
        venue=venue["name"],
        date=show_date,
        city=city.get("name") or "",
        country=country.get("name") or "",
        tour=tour.get("name"),
        setlist=extract_songs(setlist),
        setlistfm_id=setlistfm_id,
        is_manual=not setlistfm_id,
    )


class _Pacer:
    """Sleeps a fixed delay before every call except the first."""

    def __init__(self, delay: float, sleep: SleepFunc):
        self.delay = delay
        self.sleep = sleep
        self.calls = 0

    async def wait(self) -> None:
        if self.calls:
            await self.sleep(self.delay)
        self.calls += 1


class SetlistMatcher:
    """Look up the catalog setlist for an artist on a given date."""

    def __init__(
        self,
        gateway: SetlistGateway,
        *,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_size: int = DEFAULT_PAGE_SIZE,
        sleep: SleepFunc = asyncio.sleep,
    ):
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self.gateway = gateway
        self.max_pages = max_pages
        self.page_size = page_size
        self.sleep = sleep

    async def aclose(self) -> None:
        """Close the gateway, if it holds a connection pool."""
        close = getattr(self.gateway, "aclose", None)
        if close is not None:
            await close()

    async def _search_variant(
        self,
        artist: str,
        year: int,
        show_date: str,
        pacer: _Pacer,
    ) -> dict[str, Any] | None:
        for page in range(1, self.max_pages + 1):
            await pacer.wait()
            result = await self.gateway.search_setlists(artist_name=artist, year=year, page=page)
            for entry in result.setlists:
                if setlistfm_to_canonical(entry.get("eventDate")) == show_date:
                    return entry
            if len(result.setlists) < self.page_size:
                break
        return None

    async def find_setlist(self, artist: str, show_date: str) -> SetlistMatchResult | None:
        """Find the setlist for ``artist`` on ``show_date`` (``YYYY-MM-DD``).

        Returns:
            The match, or None when nothing usable is found or anything fails.
        """
        try:
            year = date.fromisoformat(show_date).year
        except (TypeError, ValueError):
            logger.debug("Cannot match setlist for invalid date %r", show_date)
            return None
        if not artist or not artist.strip():
            return None

        pacer = _Pacer(REQUEST_DELAY_SECONDS, self.sleep)
        try:
            for variant in artist_name_variants(artist):
                entry = await self._search_variant(variant, year, show_date, pacer)
                if entry is None:
                    continue
                songs = extract_songs(entry)
                if not songs:
                    logger.debug("Setlist %s for %s has no songs", entry.get("id"), variant)
                    continue
                logger.info(
                    "Matched setlist %s for %s on %s (%d songs)",
                    entry.get("id"),
                    artist,
                    show_date,
                    len(songs),
                )
                return SetlistMatchResult(
                    songs=songs,
                    setlistfm_id=entry.get("id"),
                    tour=(entry.get("tour") or {}).get("name"),
                    artist=(entry.get("artist") or {}).get("name") or variant,
                )
        except Exception as e:
            logger.warning("Setlist lookup for %s on %s failed: %s", artist, show_date, e)
            return None

        logger.debug("No setlist found for %s on %s", artist, show_date)
        return None
