"""Pytest configuration and fixtures for ShowTracker tests.

Tests run against an in-memory show store and a fake setlist.fm gateway, so
no MongoDB server or network access is needed. Tests marked ``mongodb``
exercise the Beanie store and skip when no server is reachable.
"""

import csv
import io
import os
import uuid
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from openpyxl import Workbook

from showtracker.config import reset_settings
from showtracker.models.show import Show
from showtracker.services.setlist_matcher import SetlistMatcher
from showtracker.services.setlistfm import SetlistPage
from showtracker.services.show_store import InMemoryShowStore

# MongoDB connection URL for tests (can be overridden with env var)
TEST_MONGODB_URL = os.environ.get("TEST_MONGODB_URL", "mongodb://localhost:27017")

TEST_SETLISTFM_KEY = "test-setlistfm-key"


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Generator[None, None, None]:
    """Load settings from defaults plus test env vars, never from a real config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in list(os.environ):
        if key.startswith("SHOWTRACKER_") or key in ("ANTHROPIC_API_KEY", "SETLISTFM_API_KEY"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("SHOWTRACKER_SETLISTFM_API_KEY", TEST_SETLISTFM_KEY)
    monkeypatch.setenv("SHOWTRACKER_IMPORT_WRITE_DELAY_MS", "0")
    reset_settings()
    yield
    reset_settings()


# =============================================================================
# Fakes
# =============================================================================


async def no_sleep(seconds: float) -> None:
    """Drop-in for asyncio.sleep that returns immediately."""


class SleepRecorder:
    """Records requested delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_setlist(
    artist: str,
    event_date: str,
    sets: list[dict[str, Any]] | None = None,
    *,
    setlist_id: str | None = None,
    venue: str = "Madison Square Garden",
    city: str = "New York",
    country: str = "United States",
    tour: str | None = None,
) -> dict[str, Any]:
    """Build a setlist.fm-shaped entry. ``event_date`` is DD-MM-YYYY."""
    if sets is None:
        sets = [{"song": [{"name": "Opener"}, {"name": "Closer"}]}]
    entry: dict[str, Any] = {
        "id": setlist_id or uuid.uuid4().hex[:8],
        "eventDate": event_date,
        "artist": {"name": artist},
        "venue": {
            "name": venue,
            "city": {"name": city, "country": {"name": country}},
        },
        "sets": {"set": sets},
    }
    if tour:
        entry["tour"] = {"name": tour}
    return entry


class FakeSetlistGateway:
    """In-memory stand-in for SetlistFmClient.

    Setlists are registered per artist name; searches return them paged and
    filtered by year, and every call is recorded.
    """

    def __init__(self, page_size: int = 20) -> None:
        self.page_size = page_size
        self.api_key = TEST_SETLISTFM_KEY
        self.setlists: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None
        self.closed = False

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def add(self, entry: dict[str, Any]) -> dict[str, Any]:
        self.setlists.setdefault(entry["artist"]["name"], []).append(entry)
        return entry

    async def search_setlists(
        self,
        artist_name: str | None = None,
        artist_mbid: str | None = None,
        year: int | None = None,
        venue_name: str | None = None,
        city_name: str | None = None,
        page: int = 1,
    ) -> SetlistPage:
        if not artist_name and not artist_mbid:
            raise ValueError("Artist name or MBID is required")
        self.calls.append({"artist_name": artist_name, "year": year, "page": page})
        if self.fail_with is not None:
            raise self.fail_with

        entries = self.setlists.get(artist_name or "", [])
        if year:
            entries = [e for e in entries if e["eventDate"].endswith(str(year))]
        start = (page - 1) * self.page_size
        return SetlistPage(
            setlists=entries[start : start + self.page_size],
            total=len(entries),
            items_per_page=self.page_size,
            page=page,
        )

    async def get_setlist(self, setlist_id: str) -> dict[str, Any] | None:
        for entries in self.setlists.values():
            for entry in entries:
                if entry["id"] == setlist_id:
                    return entry
        return None

    async def aclose(self) -> None:
        self.closed = True


class RecordingShowStore(InMemoryShowStore):
    """In-memory store that counts writes and can fail for chosen artists."""

    def __init__(self, *args: Any, fail_artists: set[str] | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.fail_artists = fail_artists or set()
        self.created: list[Show] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []

    async def create(self, show: Show) -> str:
        if show.artist in self.fail_artists:
            raise RuntimeError(f"write rejected for {show.artist}")
        self.created.append(show)
        return await super().create(show)

    async def update(self, show_id: str, fields: dict[str, Any]) -> None:
        self.updates.append((show_id, fields))
        await super().update(show_id, fields)


# =============================================================================
# File helpers
# =============================================================================


def make_csv(headers: list[str], rows: list[list[str]]) -> bytes:
    """Build CSV bytes from a header row and data rows."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue().encode("utf-8")


def make_xlsx(headers: list[str], rows: list[list[Any]]) -> bytes:
    """Build XLSX bytes from a header row and data rows."""
    wb = Workbook()
    ws = wb.active
    ws.append(headers)
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def show_store() -> RecordingShowStore:
    return RecordingShowStore()


@pytest.fixture
def gateway() -> FakeSetlistGateway:
    return FakeSetlistGateway()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def matcher(gateway: FakeSetlistGateway) -> SetlistMatcher:
    return SetlistMatcher(gateway, sleep=no_sleep)


@pytest_asyncio.fixture
async def client(
    show_store: RecordingShowStore,
    gateway: FakeSetlistGateway,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app, wired to the in-memory store and fake catalog."""
    from showtracker.main import app
    from showtracker.routers.deps import (
        ImportSessions,
        get_import_matcher,
        get_setlist_client,
        get_setlist_matcher,
        get_show_store,
    )

    app.dependency_overrides[get_show_store] = lambda: show_store
    app.dependency_overrides[get_setlist_client] = lambda: gateway
    app.dependency_overrides[get_setlist_matcher] = lambda: SetlistMatcher(gateway, sleep=no_sleep)
    app.dependency_overrides[get_import_matcher] = lambda: SetlistMatcher(gateway, sleep=no_sleep)
    app.state.import_sessions = ImportSessions()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await app.state.import_sessions.close()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def mongo_store() -> AsyncGenerator[Any, None]:
    """A Beanie-backed store on a throwaway database; skips without MongoDB."""
    from motor.motor_asyncio import AsyncIOMotorClient

    from showtracker.database import close_db, init_db
    from showtracker.services.show_store import BeanieShowStore

    motor_client = AsyncIOMotorClient(TEST_MONGODB_URL, serverSelectionTimeoutMS=1000)
    try:
        await motor_client.admin.command("ping")
    except Exception as e:
        motor_client.close()
        pytest.skip(f"MongoDB not available: {e}")

    db_name = f"showtracker_test_{uuid.uuid4().hex[:8]}"
    await init_db(mongodb_database=db_name, motor_client=motor_client)
    try:
        yield BeanieShowStore(owner_id="test-owner")
    finally:
        await motor_client.drop_database(db_name)
        await close_db()
