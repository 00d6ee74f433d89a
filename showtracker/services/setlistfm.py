"""setlist.fm API client (the setlist search gateway)."""

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from showtracker.config import settings
from showtracker.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

# 429 and 5xx are worth another try; everything else is final
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class SetlistGatewayError(RuntimeError):
    """The catalog could not be reached or returned something unreadable."""


@dataclass
class SetlistPage:
    """One page of setlist search results."""

    setlists: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    items_per_page: int = 20
    page: int = 1


def _is_retryable(response: httpx.Response) -> bool:
    return response.status_code in RETRYABLE_STATUS


class SetlistFmClient:
    """Async client for the setlist.fm REST API.

    Non-200 responses and empty result sets come back as empty pages. Network
    failures and malformed bodies raise ``SetlistGatewayError``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        retry_policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.setlistfm_api_key
        self.retry_policy = retry_policy or RetryPolicy(
            attempts=settings.setlist_retry_attempts,
            delay=settings.setlist_retry_delay_seconds,
            retry_if=_is_retryable,
            retry_on=(httpx.TransportError,),
        )
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.setlist_api_url,
            timeout=httpx.Timeout(timeout or settings.setlist_timeout_seconds),
            headers={
                "x-api-key": self.api_key or "",
                "Accept": "application/json",
                "User-Agent": settings.setlist_user_agent,
            },
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        """Check if an API key is available."""
        return bool(self.api_key)

    async def __aenter__(self) -> "SetlistFmClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """GET a path, returning the JSON body or None for non-200 responses."""
        try:
            response = await self.retry_policy.run(lambda: self._client.get(path, params=params))
        except httpx.HTTPError as e:
            raise SetlistGatewayError(f"setlist.fm request failed: {e}") from e

        if response.status_code != 200:
            if response.status_code != 404:
                logger.warning("setlist.fm returned %d for %s", response.status_code, path)
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise SetlistGatewayError(f"Failed to parse setlist.fm response: {e}") from e
        if not isinstance(body, dict):
            raise SetlistGatewayError("Unexpected setlist.fm response shape")
        return body

    async def search_setlists(
        self,
        artist_name: str | None = None,
        artist_mbid: str | None = None,
        year: int | None = None,
        venue_name: str | None = None,
        city_name: str | None = None,
        page: int = 1,
    ) -> SetlistPage:
        """Search setlists by artist (name or MusicBrainz id) with optional filters.

        Args:
            artist_name: Artist name, used when no MBID is given.
            artist_mbid: Exact MusicBrainz artist id.
            year: Restrict to shows in this year.
            venue_name: Restrict to a venue.
            city_name: Restrict to a city.
            page: 1-based page number.

        Raises:
            ValueError: If neither artist name nor MBID is provided.
            SetlistGatewayError: On network or parse failures.
        """
        if not artist_name and not artist_mbid:
            raise ValueError("Artist name or MBID is required")

        if not self.is_configured:
            logger.warning("setlist.fm API key not configured, returning no results")
            return SetlistPage(page=page)

        params: dict[str, Any] = {"p": page}
        if artist_mbid:
            params["artistMbid"] = artist_mbid
        else:
            params["artistName"] = artist_name
        if year:
            params["year"] = year
        if venue_name:
            params["venueName"] = venue_name
        if city_name:
            params["cityName"] = city_name

        body = await self._get("/search/setlists", params=params)
        if body is None:
            return SetlistPage(page=page)

        setlists = body.get("setlist") or []
        if isinstance(setlists, dict):
            setlists = [setlists]
        return SetlistPage(
            setlists=setlists,
            total=int(body.get("total") or 0),
            items_per_page=int(body.get("itemsPerPage") or 20),
            page=int(body.get("page") or page),
        )

    async def get_setlist(self, setlist_id: str) -> dict[str, Any] | None:
        """Fetch one setlist by its setlist.fm id, or None if it does not exist."""
        if not self.is_configured:
            logger.warning("setlist.fm API key not configured")
            return None
        return await self._get(f"/setlist/{quote(setlist_id, safe='')}")
