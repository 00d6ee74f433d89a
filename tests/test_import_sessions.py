"""Tests for the in-process import session registry."""

import asyncio

import pytest
from fastapi import HTTPException

from showtracker.routers.deps import ImportSessions
from showtracker.services.show_store import InMemoryShowStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestImportSessions:
    """Tests for session lookup and eviction."""

    def test_defaults_from_settings(self, monkeypatch):
        from showtracker.config import reset_settings

        monkeypatch.setenv("SHOWTRACKER_IMPORT_MAX_SESSIONS", "7")
        monkeypatch.setenv("SHOWTRACKER_IMPORT_SESSION_TTL_MINUTES", "2")
        reset_settings()

        sessions = ImportSessions()
        assert sessions.max_sessions == 7
        assert sessions.ttl_seconds == 120

    def test_unknown_batch(self):
        with pytest.raises(HTTPException) as exc_info:
            ImportSessions().get("nope")
        assert exc_info.value.status_code == 404

    def test_idle_sessions_expire(self, clock):
        sessions = ImportSessions(max_sessions=10, ttl_seconds=60, clock=clock)
        old = sessions.create(InMemoryShowStore())
        clock.now += 30
        fresh = sessions.create(InMemoryShowStore())

        clock.now += 45
        assert sessions.evict() == [old.batch_id]
        assert fresh.batch_id in sessions
        assert old.batch_id not in sessions

    def test_lookup_keeps_session_alive(self, clock):
        sessions = ImportSessions(max_sessions=10, ttl_seconds=60, clock=clock)
        session = sessions.create(InMemoryShowStore())

        clock.now += 50
        sessions.get(session.batch_id)
        clock.now += 50
        assert sessions.evict() == []

    def test_cap_drops_least_recently_used(self, clock):
        sessions = ImportSessions(max_sessions=2, ttl_seconds=3600, clock=clock)
        first = sessions.create(InMemoryShowStore())
        clock.now += 1
        second = sessions.create(InMemoryShowStore())
        clock.now += 1
        sessions.get(first.batch_id)
        clock.now += 1

        third = sessions.create(InMemoryShowStore())

        assert len(sessions) == 2
        assert second.batch_id not in sessions
        assert first.batch_id in sessions
        assert third.batch_id in sessions

    @pytest.mark.asyncio
    async def test_running_sessions_are_kept(self, clock):
        sessions = ImportSessions(max_sessions=1, ttl_seconds=60, clock=clock)
        running = sessions.create(InMemoryShowStore())
        running.task = asyncio.ensure_future(asyncio.Event().wait())
        try:
            clock.now += 120
            other = sessions.create(InMemoryShowStore())

            assert running.batch_id in sessions
            assert other.batch_id in sessions
        finally:
            running.task.cancel()
            await asyncio.gather(running.task, return_exceptions=True)
