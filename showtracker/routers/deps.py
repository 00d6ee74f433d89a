"""FastAPI dependencies shared by the routers."""

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from showtracker.config import settings
from showtracker.services.import_service import CancellationToken, ImportOrchestrator
from showtracker.services.screenshot import ScreenshotAnalysisService
from showtracker.services.setlist_matcher import SetlistMatcher
from showtracker.services.setlistfm import SetlistFmClient
from showtracker.services.show_store import BeanieShowStore, ShowStore

logger = logging.getLogger(__name__)


def get_show_store() -> ShowStore:
    """The show collection requests operate on."""
    return BeanieShowStore()


async def get_setlist_client() -> AsyncGenerator[SetlistFmClient, None]:
    """A setlist.fm client that lives for one request."""
    async with SetlistFmClient() as client:
        yield client


def build_setlist_matcher(gateway) -> SetlistMatcher:
    return SetlistMatcher(
        gateway,
        max_pages=settings.setlist_max_pages,
        page_size=settings.setlist_page_size,
    )


async def get_setlist_matcher(
    client: Annotated[SetlistFmClient, Depends(get_setlist_client)],
) -> SetlistMatcher:
    return build_setlist_matcher(client)


def get_import_matcher() -> Optional[SetlistMatcher]:
    """Matcher for an import's enrichment phase, or None when enrichment is off.

    The matcher owns its client; the import closes it when it finishes.
    """
    if not settings.import_enrich_setlists or not settings.setlistfm_api_key:
        return None
    return build_setlist_matcher(SetlistFmClient())


def get_screenshot_service() -> ScreenshotAnalysisService:
    return ScreenshotAnalysisService()


class ImportSession:
    """An import orchestrator plus the task committing it, if any."""

    def __init__(self, batch_id: str, orchestrator: ImportOrchestrator, now: float):
        self.batch_id = batch_id
        self.orchestrator = orchestrator
        self.cancel_token = CancellationToken()
        self.task: Optional[asyncio.Task] = None
        self.last_used = now

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()


class ImportSessions:
    """In-process registry of import sessions, keyed by batch id.

    Candidate records are never persisted. A session lasts until it is
    discarded, sits unused for ``ttl_seconds``, is pushed out by newer
    sessions beyond ``max_sessions``, or the process stops. Running imports
    are never evicted.
    """

    def __init__(
        self,
        max_sessions: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_sessions is None:
            max_sessions = settings.import_max_sessions
        if ttl_seconds is None:
            ttl_seconds = settings.import_session_ttl_seconds
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._sessions: dict[str, ImportSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, batch_id: str) -> bool:
        return batch_id in self._sessions

    def evict(self, reserve: int = 0) -> list[str]:
        """Drop expired sessions, then the least recently used over the cap.

        Args:
            reserve: Slots to keep free for sessions about to be created.

        Returns:
            The evicted batch ids.
        """
        now = self.clock()
        idle = sorted(
            (session for session in self._sessions.values() if not session.running),
            key=lambda session: session.last_used,
        )
        expired = [s.batch_id for s in idle if now - s.last_used > self.ttl_seconds]
        evicted = list(expired)
        overflow = len(self._sessions) - len(expired) + reserve - self.max_sessions
        if overflow > 0:
            evicted.extend([s.batch_id for s in idle if s.batch_id not in expired][:overflow])

        for batch_id in evicted:
            del self._sessions[batch_id]
        if evicted:
            logger.info("Evicted %d idle import sessions", len(evicted))
        return evicted

    def create(self, store: ShowStore) -> ImportSession:
        self.evict(reserve=1)
        batch_id = uuid.uuid4().hex
        orchestrator = ImportOrchestrator(
            store,
            write_delay=settings.import_write_delay_seconds,
            max_rows=settings.import_max_rows,
        )
        session = ImportSession(batch_id, orchestrator, self.clock())
        self._sessions[batch_id] = session
        return session

    def get(self, batch_id: str) -> ImportSession:
        session = self._sessions.get(batch_id)
        if session is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Import batch {batch_id} not found",
            )
        session.last_used = self.clock()
        return session

    def discard(self, batch_id: str) -> None:
        session = self.get(batch_id)
        if session.running:
            session.cancel_token.cancel()
        del self._sessions[batch_id]

    async def close(self) -> None:
        """Cancel running imports and wait for them to stop."""
        tasks = []
        for session in self._sessions.values():
            if session.running:
                session.cancel_token.cancel()
                tasks.append(session.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._sessions.clear()


def get_import_sessions(request: Request) -> ImportSessions:
    sessions = getattr(request.app.state, "import_sessions", None)
    if sessions is None:
        sessions = ImportSessions()
        request.app.state.import_sessions = sessions
    return sessions


ShowStoreDep = Annotated[ShowStore, Depends(get_show_store)]
ImportSessionsDep = Annotated[ImportSessions, Depends(get_import_sessions)]
