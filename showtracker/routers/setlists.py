"""setlist.fm search and one-click import endpoints."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from showtracker.schemas.setlist import (
    SetlistImportRequest,
    SetlistSearchResponse,
    SetlistSearchResult,
)
from showtracker.schemas.show import ShowResponse
from showtracker.services.import_service.dates import setlistfm_to_canonical
from showtracker.services.setlist_matcher import extract_songs, setlist_to_show
from showtracker.services.setlistfm import SetlistFmClient, SetlistGatewayError

from .deps import ShowStoreDep, get_setlist_client

logger = logging.getLogger(__name__)

router = APIRouter()

SetlistClientDep = Annotated[SetlistFmClient, Depends(get_setlist_client)]


def _require_configured(client: SetlistFmClient) -> None:
    if not client.is_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="setlist.fm API key not configured",
        )


def _summarize(entry: dict[str, Any]) -> SetlistSearchResult:
    venue = entry.get("venue") or {}
    city = venue.get("city") or {}
    return SetlistSearchResult(
        id=entry.get("id") or "",
        artist=(entry.get("artist") or {}).get("name") or "",
        venue=venue.get("name") or "",
        city=city.get("name") or "",
        country=(city.get("country") or {}).get("name") or "",
        date=setlistfm_to_canonical(entry.get("eventDate")),
        tour=(entry.get("tour") or {}).get("name"),
        song_count=len(extract_songs(entry)),
    )


@router.get("/search", response_model=SetlistSearchResponse)
async def search_setlists(
    client: SetlistClientDep,
    artist: str | None = Query(None, description="Artist name"),
    artist_mbid: str | None = Query(None, description="MusicBrainz artist id"),
    year: int | None = Query(None, ge=1900, le=2100),
    venue: str | None = None,
    city: str | None = None,
    page: int = Query(1, ge=1),
) -> SetlistSearchResponse:
    """Search the setlist.fm catalog."""
    _require_configured(client)
    try:
        result = await client.search_setlists(
            artist_name=artist,
            artist_mbid=artist_mbid,
            year=year,
            venue_name=venue,
            city_name=city,
            page=page,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SetlistGatewayError as e:
        logger.warning("setlist.fm search failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return SetlistSearchResponse(
        results=[_summarize(entry) for entry in result.setlists],
        total=result.total,
        page=result.page,
        items_per_page=result.items_per_page,
    )


@router.post("/import", response_model=ShowResponse, status_code=status.HTTP_201_CREATED)
async def import_setlist(
    request: SetlistImportRequest,
    client: SetlistClientDep,
    store: ShowStoreDep,
) -> ShowResponse:
    """Add a catalog setlist to the collection as a show, songs included."""
    entry = request.setlist
    if entry is None:
        if not request.setlist_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Either setlist_id or setlist is required",
            )
        _require_configured(client)
        try:
            entry = await client.get_setlist(request.setlist_id)
        except SetlistGatewayError as e:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
        if entry is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Setlist {request.setlist_id} not found",
            )

    try:
        show = setlist_to_show(entry)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if show.setlistfm_id:
        existing = await store.list()
        if any(other.setlistfm_id == show.setlistfm_id for other in existing):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Setlist {show.setlistfm_id} is already in the collection",
            )

    show_id = await store.create(show)
    logger.info("Imported setlist %s as show %s", show.setlistfm_id, show_id)
    created = await store.get(show_id)
    return ShowResponse.model_validate(created.model_dump())
