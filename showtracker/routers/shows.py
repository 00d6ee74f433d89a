"""Show endpoints: collection CRUD, song edits, setlist matching and song stats."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from showtracker.models.show import Show, Song
from showtracker.schemas.show import (
    CollectionSummaryResponse,
    SetlistMatchResponse,
    ShowCreate,
    ShowResponse,
    ShowUpdate,
    SongCreate,
    SongStatResponse,
    SongUpdate,
)
from showtracker.services.setlist_matcher import SetlistMatcher
from showtracker.services.show_store import ShowNotFoundError, ShowStore
from showtracker.services.song_stats import collection_summary, filter_shows, song_stats

from .deps import ShowStoreDep, get_setlist_matcher

logger = logging.getLogger(__name__)

router = APIRouter()

# Fields a show always has a value for; a null in an update is ignored
_NON_NULLABLE = {"artist", "venue", "date", "city", "country", "comment"}


def _to_response(show: Show) -> ShowResponse:
    return ShowResponse.model_validate(show.model_dump())


async def _get_show(store: ShowStore, show_id: str) -> Show:
    show = await store.get(show_id)
    if show is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Show with ID {show_id} not found",
        )
    return show


async def _save(store: ShowStore, show_id: str, fields: dict) -> Show:
    try:
        await store.update(show_id, fields)
    except ShowNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return await _get_show(store, show_id)


def _song_index(show: Show, song_id: str) -> int:
    for index, song in enumerate(show.setlist):
        if song.id == song_id:
            return index
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Song with ID {song_id} not found",
    )


@router.get("", response_model=list[ShowResponse])
async def list_shows(
    store: ShowStoreDep,
    search: str | None = Query(None, description="Case-insensitive artist or venue substring"),
) -> list[ShowResponse]:
    """List the shows in the collection, optionally filtered by artist or venue."""
    shows = filter_shows(await store.list(), search)
    return [_to_response(show) for show in shows]


@router.post("", response_model=ShowResponse, status_code=status.HTTP_201_CREATED)
async def create_show(store: ShowStoreDep, show_create: ShowCreate) -> ShowResponse:
    """Add a show by hand."""
    data = show_create.model_dump()
    setlist = [Song(**song) for song in data.pop("setlist")]
    show_id = await store.create(Show(**data, setlist=setlist, is_manual=True))
    logger.info("Created show %s: %s at %s", show_id, show_create.artist, show_create.venue)
    return _to_response(await _get_show(store, show_id))


@router.get("/stats/songs", response_model=list[SongStatResponse])
async def get_song_stats(store: ShowStoreDep, limit: int | None = None) -> list[SongStatResponse]:
    """Play count and average rating for every song heard, most heard first."""
    stats = song_stats(await store.list())
    if limit is not None:
        stats = stats[: max(limit, 0)]
    return [SongStatResponse.model_validate(stat) for stat in stats]


@router.get("/stats/summary", response_model=CollectionSummaryResponse)
async def get_collection_summary(store: ShowStoreDep) -> CollectionSummaryResponse:
    """Totals, top 10 songs and the five latest shows, plus a text to share."""
    summary = collection_summary(await store.list())
    return CollectionSummaryResponse(
        total_shows=summary.total_shows,
        total_songs=summary.total_songs,
        top_songs=[SongStatResponse.model_validate(stat) for stat in summary.top_songs],
        recent_shows=[_to_response(show) for show in summary.recent_shows],
        share_text=summary.share_text,
    )


@router.get("/{show_id}", response_model=ShowResponse)
async def get_show(show_id: str, store: ShowStoreDep) -> ShowResponse:
    return _to_response(await _get_show(store, show_id))


@router.put("/{show_id}", response_model=ShowResponse)
async def update_show(show_id: str, store: ShowStoreDep, show_update: ShowUpdate) -> ShowResponse:
    """Update show metadata, rating or comment."""
    await _get_show(store, show_id)
    update_data = {
        field: value
        for field, value in show_update.model_dump(exclude_unset=True).items()
        if value is not None or field not in _NON_NULLABLE
    }
    if not update_data:
        return _to_response(await _get_show(store, show_id))
    return _to_response(await _save(store, show_id, update_data))


@router.delete("/{show_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_show(show_id: str, store: ShowStoreDep) -> None:
    try:
        await store.delete(show_id)
    except ShowNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    logger.info("Deleted show %s", show_id)


@router.post(
    "/{show_id}/songs",
    response_model=ShowResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_song(show_id: str, store: ShowStoreDep, song_create: SongCreate) -> ShowResponse:
    """Append a song to the end of a show's setlist."""
    show = await _get_show(store, show_id)
    setlist = [*show.setlist, Song(**song_create.model_dump())]
    return _to_response(await _save(store, show_id, {"setlist": setlist}))


@router.put("/{show_id}/songs/{song_id}", response_model=ShowResponse)
async def update_song(
    show_id: str,
    song_id: str,
    store: ShowStoreDep,
    song_update: SongUpdate,
) -> ShowResponse:
    """Rate, comment on or rename a song."""
    show = await _get_show(store, show_id)
    index = _song_index(show, song_id)
    changes = song_update.model_dump(exclude_unset=True)
    if changes.get("name") is None:
        changes.pop("name", None)
    setlist = list(show.setlist)
    setlist[index] = setlist[index].model_copy(update=changes)
    return _to_response(await _save(store, show_id, {"setlist": setlist}))


@router.delete("/{show_id}/songs/{song_id}", response_model=ShowResponse)
async def delete_song(show_id: str, song_id: str, store: ShowStoreDep) -> ShowResponse:
    show = await _get_show(store, show_id)
    index = _song_index(show, song_id)
    setlist = [song for position, song in enumerate(show.setlist) if position != index]
    return _to_response(await _save(store, show_id, {"setlist": setlist}))


@router.post("/{show_id}/setlist/match", response_model=SetlistMatchResponse)
async def match_setlist(
    show_id: str,
    store: ShowStoreDep,
    matcher: Annotated[SetlistMatcher, Depends(get_setlist_matcher)],
) -> SetlistMatchResponse:
    """Look the show up on setlist.fm and replace its setlist on a match."""
    show = await _get_show(store, show_id)
    match = await matcher.find_setlist(show.artist, show.date)
    if match is None:
        return SetlistMatchResponse(matched=False, show=_to_response(show))

    updated = await _save(
        store,
        show_id,
        {
            "setlist": match.songs,
            "setlistfm_id": match.setlistfm_id,
            "tour": match.tour or show.tour,
            "is_manual": False,
        },
    )
    return SetlistMatchResponse(matched=True, show=_to_response(updated))
