"""Search sessions: run a search, page through results, pick one."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from ...domain.music.value_objects import PageDirection, SearchOptions
from ...domain.search.entities import SearchPage, SearchSession
from ...domain.shared.exceptions import (
    InvalidPositionError,
    InvalidQueryError,
    SessionExpiredError,
    SessionUnauthorizedError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ..interfaces.audio_resolver import AudioResolver

logger = logging.getLogger(__name__)

SEARCH_MIN_DURATION_SECONDS = 61


class SearchSessionManager:
    def __init__(
        self,
        *,
        audio_resolver: AudioResolver,
        session_ttl_seconds: float = 300,
        sweep_interval_seconds: float = 60,
        result_limit: int = SearchSession.MAX_RESULTS,
    ) -> None:
        self._resolver = audio_resolver
        self._ttl = session_ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._result_limit = min(result_limit, SearchSession.MAX_RESULTS)
        self._sessions: dict[str, SearchSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._running = False
        self._task: asyncio.Task[None] | None = None

    # ── Search ──────────────────────────────────────────────────────

    async def search(self, query: str) -> list[Track]:
        if not query or not query.strip():
            raise InvalidQueryError(query or "")
        options = SearchOptions(
            limit=self._result_limit,
            exclude_short_form=True,
            prefer_long_form=True,
            min_duration=SEARCH_MIN_DURATION_SECONDS,
        )
        results = await self._resolver.search(query.strip(), options)
        return results[: self._result_limit]

    # ── Session lifecycle ───────────────────────────────────────────

    def create_session(
        self, owner_id: int, query: str, results: list[Track], now: datetime | None = None
    ) -> str:
        session = SearchSession.create(owner_id, query, results, now=now)
        session_id = session.session_id
        suffix = 1
        while session_id in self._sessions:
            suffix += 1
            session_id = f"{session.session_id}-{suffix}"
        if session_id != session.session_id:
            session = session.model_copy(update={"session_id": session_id})

        self._sessions[session_id] = session
        self._locks[session_id] = asyncio.Lock()
        logger.info(LogTemplates.SEARCH_SESSION_CREATED, session_id, owner_id, len(session.results))
        return session_id

    def get(self, session_id: str, now: datetime | None = None) -> SearchSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionExpiredError(session_id)
        if session.is_expired(self._ttl, now):
            self._remove(session_id)
            raise SessionExpiredError(session_id)
        return session

    def page(self, session_id: str) -> SearchPage:
        return self.get(session_id).page()

    def paginate(self, session_id: str, requester_id: int, direction: PageDirection) -> SearchPage:
        """Move one page.

        Raises:
            InvalidPositionError: The move would leave the result range. The
                session stays on its current page.
        """
        session = self._authorized(session_id, requester_id)
        if not session.move(direction):
            logger.debug(LogTemplates.SEARCH_PAGE_OUT_OF_RANGE, session_id, direction.name)
            message = (
                ErrorMessages.SEARCH_NO_NEXT_PAGE
                if direction is PageDirection.NEXT
                else ErrorMessages.SEARCH_NO_PREVIOUS_PAGE
            )
            raise InvalidPositionError(
                session.current_page + direction.value + 1, session.total_pages, message=message
            )
        return session.page()

    async def select(
        self,
        session_id: str,
        requester_id: int,
        index: int,
        *,
        enqueue: Callable[[Track], Awaitable[Any]],
    ) -> Track:
        """Route result ``index`` (absolute, 0-based) into ``enqueue`` and consume the session.

        If ``enqueue`` raises, the session stays available.
        """
        lock = self._locks.get(session_id)
        if lock is None:
            raise SessionExpiredError(session_id)

        async with lock:
            session = self._authorized(session_id, requester_id)
            if not session.has_index(index):
                raise InvalidPositionError(index + 1, len(session.results))

            track = session.results[index]
            await enqueue(track)
            self._remove(session_id)
            logger.info(LogTemplates.SEARCH_SESSION_SELECTED, session_id, track.title)

        self.sweep_expired()
        return track

    def cancel(self, session_id: str, requester_id: int) -> None:
        self._authorized(session_id, requester_id)
        self._remove(session_id)
        logger.info(LogTemplates.SEARCH_SESSION_CANCELLED, session_id)

    def sweep_expired(self, now: datetime | None = None) -> int:
        expired = [sid for sid, s in self._sessions.items() if s.is_expired(self._ttl, now)]
        for session_id in expired:
            self._remove(session_id)
        if expired:
            logger.info(LogTemplates.SEARCH_SESSIONS_SWEPT, len(expired))
        return len(expired)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def _authorized(self, session_id: str, requester_id: int) -> SearchSession:
        session = self.get(session_id)
        if not session.is_owned_by(requester_id):
            logger.warning(LogTemplates.SEARCH_SESSION_UNAUTHORIZED, session_id, requester_id)
            raise SessionUnauthorizedError(session_id)
        return session

    def _remove(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._locks.pop(session_id, None)

    # ── Background sweeper ──────────────────────────────────────────

    def start(self) -> None:
        if self._running:
            logger.warning(LogTemplates.SEARCH_SWEEPER_ALREADY_RUNNING)
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(LogTemplates.SEARCH_SWEEPER_STARTED)

    async def stop(self) -> None:
        self._running = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._sessions.clear()
        self._locks.clear()
        logger.info(LogTemplates.SEARCH_SWEEPER_STOPPED)

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._sweep_interval)
            except asyncio.CancelledError:
                break

            try:
                self.sweep_expired()
            except Exception:
                logger.exception("Error during search session sweep")

    @property
    def is_running(self) -> bool:
        return self._running
