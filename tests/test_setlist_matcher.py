"""Tests for setlist matching against the catalog."""

import pytest

from conftest import FakeSetlistGateway, SleepRecorder, make_setlist, no_sleep
from showtracker.services.setlist_matcher import (
    REQUEST_DELAY_SECONDS,
    SetlistMatcher,
    artist_name_variants,
    extract_songs,
    set_break_label,
    setlist_to_show,
    toggle_the_prefix,
)


# =============================================================================
# Artist name variants
# =============================================================================


def test_toggle_the_prefix() -> None:
    assert toggle_the_prefix("The National") == "National"
    assert toggle_the_prefix("the war on drugs") == "war on drugs"
    assert toggle_the_prefix("National") == "The National"
    assert toggle_the_prefix("Theory of a Deadman") == "The Theory of a Deadman"


def test_variants_with_ampersand() -> None:
    assert artist_name_variants("Dead & Company") == [
        "Dead & Company",
        "Dead and Company",
        "The Dead & Company",
    ]


def test_variants_without_ampersand() -> None:
    assert artist_name_variants("The Beatles") == ["The Beatles", "Beatles"]


# =============================================================================
# Song extraction
# =============================================================================


def test_set_break_labels() -> None:
    assert set_break_label(1, None) == "Main Set"
    assert set_break_label(2, None) == "Set 2"
    assert set_break_label(3, 1) == "Encore"
    assert set_break_label(4, 2) == "Encore 2"


def test_extract_songs_labels_first_song_of_each_block() -> None:
    setlist = make_setlist(
        "Phish",
        "15-07-2023",
        [
            {"song": [{"name": "Chalk Dust Torture"}, {"name": "Tweezer"}]},
            {"song": [{"name": "Down with Disease"}, {"name": "Ghost"}]},
            {"encore": 1, "song": [{"name": "Loving Cup", "cover": {"name": "The Rolling Stones"}}]},
            {"encore": 2, "song": [{"name": "Tweezer Reprise"}]},
        ],
    )
    songs = extract_songs(setlist)

    assert [song.name for song in songs] == [
        "Chalk Dust Torture",
        "Tweezer",
        "Down with Disease",
        "Ghost",
        "Loving Cup",
        "Tweezer Reprise",
    ]
    assert [song.set_break for song in songs] == [
        "Main Set",
        None,
        "Set 2",
        None,
        "Encore",
        "Encore 2",
    ]
    assert songs[4].cover == "The Rolling Stones cover"
    assert songs[0].cover is None


def test_extract_songs_skips_unnamed_and_single_objects() -> None:
    setlist = {
        "sets": {
            "set": {
                "song": [{"name": ""}, {"name": "Wilco (The Song)"}],
            }
        }
    }
    songs = extract_songs(setlist)
    assert [song.name for song in songs] == ["Wilco (The Song)"]
    assert songs[0].set_break == "Main Set"


def test_extract_songs_empty() -> None:
    assert extract_songs({}) == []
    assert extract_songs({"sets": {"set": []}}) == []


def test_setlist_to_show() -> None:
    entry = make_setlist("Phish", "31-12-2023", setlist_id="abc123", tour="Winter Tour")
    show = setlist_to_show(entry)
    assert show.artist == "Phish"
    assert show.venue == "Madison Square Garden"
    assert show.city == "New York"
    assert show.country == "United States"
    assert show.date == "2023-12-31"
    assert show.tour == "Winter Tour"
    assert show.setlistfm_id == "abc123"
    assert not show.is_manual
    assert [song.name for song in show.setlist] == ["Opener", "Closer"]


def test_setlist_to_show_requires_date() -> None:
    with pytest.raises(ValueError):
        setlist_to_show(make_setlist("Phish", "not-a-date"))
    entry = make_setlist("Phish", "31-12-2023")
    entry["eventDate"] = 20231231
    with pytest.raises(ValueError):
        setlist_to_show(entry)


@pytest.mark.parametrize(
    "sets",
    [
        ["Tweezer"],
        [{"song": ["Tweezer"]}],
        [{"song": [{"name": "Loving Cup", "cover": "The Rolling Stones"}]}],
    ],
)
def test_malformed_entries_raise_value_error(sets: list) -> None:
    entry = make_setlist("Phish", "31-12-2023", sets)
    with pytest.raises(ValueError, match="Malformed setlist"):
        extract_songs(entry)
    with pytest.raises(ValueError, match="Malformed setlist"):
        setlist_to_show(entry)


def test_malformed_venue_raises_value_error() -> None:
    entry = make_setlist("Phish", "31-12-2023")
    entry["venue"] = "Madison Square Garden"
    with pytest.raises(ValueError, match="venue must be an object"):
        setlist_to_show(entry)


# =============================================================================
# Matching
# =============================================================================


@pytest.mark.asyncio
async def test_find_setlist_exact_date(gateway: FakeSetlistGateway, matcher: SetlistMatcher) -> None:
    gateway.add(make_setlist("Phish", "14-07-2023", setlist_id="wrong-night"))
    gateway.add(make_setlist("Phish", "15-07-2023", setlist_id="right-night", tour="Summer Tour"))

    match = await matcher.find_setlist("Phish", "2023-07-15")

    assert match is not None
    assert match.setlistfm_id == "right-night"
    assert match.tour == "Summer Tour"
    assert [song.name for song in match.songs] == ["Opener", "Closer"]
    assert gateway.calls == [{"artist_name": "Phish", "year": 2023, "page": 1}]


@pytest.mark.asyncio
async def test_ampersand_retry(gateway: FakeSetlistGateway, matcher: SetlistMatcher) -> None:
    gateway.add(make_setlist("Dead and Company", "01-07-2023", setlist_id="dac"))

    match = await matcher.find_setlist("Dead & Company", "2023-07-01")

    assert match is not None
    assert match.setlistfm_id == "dac"
    assert [call["artist_name"] for call in gateway.calls] == ["Dead & Company", "Dead and Company"]


@pytest.mark.asyncio
async def test_the_prefix_retry(gateway: FakeSetlistGateway, matcher: SetlistMatcher) -> None:
    gateway.add(make_setlist("The National", "20-05-2023"))

    match = await matcher.find_setlist("National", "2023-05-20")

    assert match is not None
    assert [call["artist_name"] for call in gateway.calls] == ["National", "The National"]


@pytest.mark.asyncio
async def test_no_match_tries_every_variant(
    gateway: FakeSetlistGateway, matcher: SetlistMatcher
) -> None:
    assert await matcher.find_setlist("Dead & Company", "2023-07-01") is None
    assert [call["artist_name"] for call in gateway.calls] == [
        "Dead & Company",
        "Dead and Company",
        "The Dead & Company",
    ]


@pytest.mark.asyncio
async def test_pagination_stops_on_short_page(gateway: FakeSetlistGateway) -> None:
    gateway.page_size = 2
    for day in range(1, 6):
        gateway.add(make_setlist("Phish", f"{day:02d}-08-2023"))
    matcher = SetlistMatcher(gateway, page_size=2, max_pages=5, sleep=no_sleep)

    match = await matcher.find_setlist("Phish", "2023-08-05")

    assert match is not None
    assert [call["page"] for call in gateway.calls] == [1, 2, 3]


@pytest.mark.asyncio
async def test_pagination_is_capped(gateway: FakeSetlistGateway) -> None:
    gateway.page_size = 2
    for day in range(1, 11):
        gateway.add(make_setlist("Phish", f"{day:02d}-08-2023"))
    matcher = SetlistMatcher(gateway, page_size=2, max_pages=3, sleep=no_sleep)

    assert await matcher.find_setlist("Phish", "2023-08-10") is None
    # three full pages, then one empty page for "The Phish"
    assert [call["page"] for call in gateway.calls] == [1, 2, 3, 1]


@pytest.mark.asyncio
async def test_requests_are_paced(gateway: FakeSetlistGateway, sleep_recorder: SleepRecorder) -> None:
    matcher = SetlistMatcher(gateway, sleep=sleep_recorder)

    await matcher.find_setlist("Dead & Company", "2023-07-01")

    assert len(gateway.calls) == 3
    assert sleep_recorder.delays == [REQUEST_DELAY_SECONDS, REQUEST_DELAY_SECONDS]
    assert REQUEST_DELAY_SECONDS == 0.3


@pytest.mark.asyncio
async def test_match_without_songs_is_no_match(
    gateway: FakeSetlistGateway, matcher: SetlistMatcher
) -> None:
    gateway.add(make_setlist("Phish", "15-07-2023", sets=[]))
    assert await matcher.find_setlist("Phish", "2023-07-15") is None


@pytest.mark.asyncio
async def test_gateway_failure_is_no_match(
    gateway: FakeSetlistGateway, matcher: SetlistMatcher
) -> None:
    gateway.fail_with = ConnectionError("connection reset")
    assert await matcher.find_setlist("Phish", "2023-07-15") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("artist, show_date", [("Phish", "not-a-date"), ("  ", "2023-07-15")])
async def test_unusable_input_is_no_match(
    gateway: FakeSetlistGateway, matcher: SetlistMatcher, artist: str, show_date: str
) -> None:
    assert await matcher.find_setlist(artist, show_date) is None
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_aclose_closes_gateway(gateway: FakeSetlistGateway, matcher: SetlistMatcher) -> None:
    await matcher.aclose()
    assert gateway.closed


def test_max_pages_must_be_positive(gateway: FakeSetlistGateway) -> None:
    with pytest.raises(ValueError):
        SetlistMatcher(gateway, max_pages=0)
