"""Tests for the show store implementations."""

import pytest

from showtracker.models.show import Show, Song
from showtracker.services.show_store import InMemoryShowStore, ShowNotFoundError, ShowStore


def _show(**overrides) -> Show:
    values = {"artist": "Phish", "venue": "Madison Square Garden", "date": "2023-07-15"}
    values.update(overrides)
    return Show(**values)


class TestInMemoryShowStore:
    """Tests for the dict-backed store."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryShowStore(), ShowStore)

    @pytest.mark.asyncio
    async def test_create_and_get(self):
        store = InMemoryShowStore()
        show_id = await store.create(_show(city="New York"))

        show = await store.get(show_id)
        assert show.id == show_id
        assert show.city == "New York"
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_list_keeps_insertion_order(self):
        store = InMemoryShowStore([_show(artist="Wilco")])
        await store.create(_show())
        assert [show.artist for show in await store.list()] == ["Wilco", "Phish"]

    @pytest.mark.asyncio
    async def test_returned_shows_are_copies(self):
        store = InMemoryShowStore()
        show_id = await store.create(_show(setlist=[Song(name="Tweezer")]))

        show = await store.get(show_id)
        show.setlist.append(Song(name="Ghost"))
        assert len((await store.get(show_id)).setlist) == 1

    @pytest.mark.asyncio
    async def test_update(self):
        store = InMemoryShowStore()
        show_id = await store.create(_show())

        await store.update(show_id, {"setlist": [Song(name="Tweezer")], "setlistfm_id": "63de4613"})

        show = await store.get(show_id)
        assert show.setlist[0].name == "Tweezer"
        assert show.setlistfm_id == "63de4613"
        assert show.artist == "Phish"

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self):
        store = InMemoryShowStore()
        show_id = await store.create(_show())
        with pytest.raises(ValueError, match="Unknown show fields"):
            await store.update(show_id, {"owner": "someone"})

    @pytest.mark.asyncio
    async def test_missing_show(self):
        store = InMemoryShowStore()
        with pytest.raises(ShowNotFoundError, match="Show with ID nope not found"):
            await store.update("nope", {"rating": 5})
        with pytest.raises(ShowNotFoundError):
            await store.delete("nope")

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryShowStore()
        show_id = await store.create(_show())
        await store.delete(show_id)
        assert await store.list() == []


@pytest.mark.mongodb
class TestBeanieShowStore:
    """Tests for the MongoDB-backed store."""

    @pytest.mark.asyncio
    async def test_round_trip(self, mongo_store):
        show_id = await mongo_store.create(_show(setlist=[Song(name="Tweezer", set_break="Main Set")]))

        show = await mongo_store.get(show_id)
        assert show.id == show_id
        assert show.setlist[0].name == "Tweezer"

        await mongo_store.update(show_id, {"rating": 9, "setlistfm_id": "63de4613"})
        show = await mongo_store.get(show_id)
        assert (show.rating, show.setlistfm_id) == (9, "63de4613")

    @pytest.mark.asyncio
    async def test_list_newest_first(self, mongo_store):
        await mongo_store.create(_show(date="2022-12-31"))
        await mongo_store.create(_show(date="2023-07-15"))
        assert [show.date for show in await mongo_store.list()] == ["2023-07-15", "2022-12-31"]

    @pytest.mark.asyncio
    async def test_invalid_and_missing_ids(self, mongo_store):
        assert await mongo_store.get("not-an-object-id") is None
        with pytest.raises(ShowNotFoundError):
            await mongo_store.delete("000000000000000000000001")

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, mongo_store):
        from showtracker.services.show_store import BeanieShowStore

        show_id = await mongo_store.create(_show())
        other = BeanieShowStore(owner_id="someone-else")
        assert await other.get(show_id) is None
        assert await other.list() == []
