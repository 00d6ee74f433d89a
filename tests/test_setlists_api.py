"""Tests for setlist.fm search and import endpoints."""

import pytest
from httpx import AsyncClient

from conftest import FakeSetlistGateway, RecordingShowStore, make_setlist
from showtracker.services.setlistfm import SetlistGatewayError


@pytest.fixture
def catalog(gateway: FakeSetlistGateway) -> FakeSetlistGateway:
    gateway.add(
        make_setlist(
            "Phish",
            "15-07-2023",
            [{"song": [{"name": "Tweezer"}, {"name": "Ghost"}]}, {"encore": 1, "song": [{"name": "Loving Cup"}]}],
            setlist_id="63de4613",
            tour="Summer Tour 2023",
        )
    )
    gateway.add(make_setlist("Phish", "31-12-2022", setlist_id="2bd6e41e"))
    return gateway


# =============================================================================
# Search
# =============================================================================


@pytest.mark.asyncio
async def test_search(client: AsyncClient, catalog: FakeSetlistGateway) -> None:
    response = await client.get("/api/setlists/search", params={"artist": "Phish"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["page"] == 1
    first = data["results"][0]
    assert first == {
        "id": "63de4613",
        "artist": "Phish",
        "venue": "Madison Square Garden",
        "city": "New York",
        "country": "United States",
        "date": "2023-07-15",
        "tour": "Summer Tour 2023",
        "song_count": 3,
    }


@pytest.mark.asyncio
async def test_search_by_year(client: AsyncClient, catalog: FakeSetlistGateway) -> None:
    response = await client.get("/api/setlists/search", params={"artist": "Phish", "year": 2022})

    assert [result["id"] for result in response.json()["results"]] == ["2bd6e41e"]
    assert catalog.calls[-1] == {"artist_name": "Phish", "year": 2022, "page": 1}


@pytest.mark.asyncio
async def test_search_requires_artist(client: AsyncClient) -> None:
    response = await client.get("/api/setlists/search", params={"city": "New York"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_search_unconfigured(client: AsyncClient, gateway: FakeSetlistGateway) -> None:
    gateway.api_key = ""
    response = await client.get("/api/setlists/search", params={"artist": "Phish"})
    assert response.status_code == 503
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_search_gateway_failure(client: AsyncClient, gateway: FakeSetlistGateway) -> None:
    gateway.fail_with = SetlistGatewayError("setlist.fm unavailable")
    response = await client.get("/api/setlists/search", params={"artist": "Phish"})
    assert response.status_code == 502
    assert response.json()["detail"] == "setlist.fm unavailable"


# =============================================================================
# Import
# =============================================================================


@pytest.mark.asyncio
async def test_import_by_id(
    client: AsyncClient, catalog: FakeSetlistGateway, show_store: RecordingShowStore
) -> None:
    response = await client.post("/api/setlists/import", json={"setlist_id": "63de4613"})

    assert response.status_code == 201
    show = response.json()
    assert (show["artist"], show["venue"], show["date"]) == ("Phish", "Madison Square Garden", "2023-07-15")
    assert show["setlistfm_id"] == "63de4613"
    assert show["is_manual"] is False
    assert [(song["name"], song["set_break"]) for song in show["setlist"]] == [
        ("Tweezer", "Main Set"),
        ("Ghost", None),
        ("Loving Cup", "Encore"),
    ]
    assert len(show_store.created) == 1


@pytest.mark.asyncio
async def test_import_by_payload(client: AsyncClient, gateway: FakeSetlistGateway) -> None:
    entry = make_setlist("Wilco", "20-06-2023", setlist_id="wilco-1", venue="The Riviera", city="Chicago")

    response = await client.post("/api/setlists/import", json={"setlist": entry})

    assert response.status_code == 201
    assert response.json()["city"] == "Chicago"


@pytest.mark.asyncio
async def test_import_duplicate(client: AsyncClient, catalog: FakeSetlistGateway) -> None:
    await client.post("/api/setlists/import", json={"setlist_id": "63de4613"})
    response = await client.post("/api/setlists/import", json={"setlist_id": "63de4613"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_import_unknown_id(client: AsyncClient, catalog: FakeSetlistGateway) -> None:
    response = await client.post("/api/setlists/import", json={"setlist_id": "missing"})
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"setlist": {"id": "x", "artist": {"name": "Phish"}, "venue": {"name": "MSG"}}},
        {"setlist": {**make_setlist("Phish", "15-07-2023", ["Tweezer"]), "id": "bad-set"}},
        {"setlist": {**make_setlist("Phish", "15-07-2023", [{"song": ["Tweezer"]}]), "id": "bad-song"}},
        {"setlist": {**make_setlist("Phish", "15-07-2023"), "venue": "MSG"}},
    ],
)
async def test_import_bad_request(client: AsyncClient, payload: dict) -> None:
    response = await client.post("/api/setlists/import", json=payload)
    assert response.status_code == 400
