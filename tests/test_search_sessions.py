"""
Unit Tests for Search Sessions

Tests for:
- SearchSession paging (three results per page, bounded moves)
- SearchSessionManager lifecycle: create, paginate, select, cancel, expiry
- Owner-only access and single-use selection
"""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from conftest import make_track

from discord_audio_queue.application.services.search_service import (
    SEARCH_MIN_DURATION_SECONDS,
    SearchSessionManager,
)
from discord_audio_queue.domain.music.value_objects import PageDirection
from discord_audio_queue.domain.search.entities import SearchSession
from discord_audio_queue.domain.shared.exceptions import (
    InvalidPositionError,
    InvalidQueryError,
    SessionExpiredError,
    SessionUnauthorizedError,
)

OWNER = 1001
STRANGER = 2002


def _results(count: int = 7):
    return [make_track(f"r{i}", f"Result {i}", 200) for i in range(count)]


# =============================================================================
# SearchSession
# =============================================================================


class TestSearchSession:
    def test_pages_of_three(self):
        """Should split seven results into pages of 3, 3 and 1."""
        session = SearchSession.create(OWNER, "query", _results(7))

        assert session.total_pages == 3
        assert [item.index for item in session.page().items] == [0, 1, 2]

        session.move(PageDirection.NEXT)
        session.move(PageDirection.NEXT)
        last = session.page()

        assert [item.index for item in last.items] == [6]
        assert last.has_previous
        assert not last.has_next

    def test_move_out_of_range_is_noop(self):
        """Should refuse moving before the first or past the last page."""
        session = SearchSession.create(OWNER, "query", _results(2))

        assert not session.move(PageDirection.PREVIOUS)
        assert not session.move(PageDirection.NEXT)
        assert session.current_page == 0

    def test_results_are_capped(self):
        """Should keep at most fifteen results."""
        session = SearchSession.create(OWNER, "query", _results(20))

        assert len(session.results) == 15
        assert session.total_pages == 5

    def test_session_id_derives_from_owner_and_time(self):
        """Should build the id from the owner and creation time."""
        now = datetime(2024, 1, 1, tzinfo=UTC)
        session = SearchSession.create(OWNER, "query", _results(1), now=now)

        assert session.session_id == f"{OWNER}-{int(now.timestamp() * 1000)}"

    def test_expiry(self):
        """Should expire once older than the TTL."""
        created = datetime(2024, 1, 1, tzinfo=UTC)
        session = SearchSession.create(OWNER, "query", _results(1), now=created)

        assert not session.is_expired(300, now=created + timedelta(seconds=299))
        assert session.is_expired(300, now=created + timedelta(seconds=301))


# =============================================================================
# SearchSessionManager
# =============================================================================


@pytest.fixture
def manager(fake_resolver):
    return SearchSessionManager(audio_resolver=fake_resolver, session_ttl_seconds=300)


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_uses_long_form_options(self, manager, fake_resolver):
        """Should ask the resolver for long-form results only."""
        fake_resolver.search_results = _results(3)

        results = await manager.search("  lofi beats  ")

        assert len(results) == 3
        query, options = fake_resolver.search_calls[0]
        assert query == "lofi beats"
        assert options.exclude_short_form
        assert options.prefer_long_form
        assert options.min_duration == SEARCH_MIN_DURATION_SECONDS

    @pytest.mark.asyncio
    async def test_search_rejects_blank_query(self, manager):
        """Should reject empty searches before calling the resolver."""
        with pytest.raises(InvalidQueryError):
            await manager.search("   ")


class TestSessionAccess:
    def test_paginate_owner(self, manager):
        """Should move the owner's session forward and back."""
        sid = manager.create_session(OWNER, "query", _results(7))

        page = manager.paginate(sid, OWNER, PageDirection.NEXT)
        assert page.page == 1
        assert [item.index for item in page.items] == [3, 4, 5]

        page = manager.paginate(sid, OWNER, PageDirection.PREVIOUS)
        assert page.page == 0

    def test_paginate_seven_results(self, manager):
        """Should walk 0-2, 3-5, 6 and then refuse a fourth move without changing page."""
        sid = manager.create_session(OWNER, "query", _results(7))
        assert [item.index for item in manager.page(sid).items] == [0, 1, 2]

        second = manager.paginate(sid, OWNER, PageDirection.NEXT)
        third = manager.paginate(sid, OWNER, PageDirection.NEXT)

        assert [item.index for item in second.items] == [3, 4, 5]
        assert [item.index for item in third.items] == [6]

        with pytest.raises(InvalidPositionError, match="last page"):
            manager.paginate(sid, OWNER, PageDirection.NEXT)
        assert manager.page(sid).page == 2

    def test_paginate_before_first_page(self, manager):
        """Should refuse moving back from the first page."""
        sid = manager.create_session(OWNER, "query", _results(7))

        with pytest.raises(InvalidPositionError, match="first page"):
            manager.paginate(sid, OWNER, PageDirection.PREVIOUS)
        assert manager.page(sid).page == 0

    def test_stranger_cannot_paginate(self, manager):
        """Should reject anyone but the owner."""
        sid = manager.create_session(OWNER, "query", _results(7))

        with pytest.raises(SessionUnauthorizedError):
            manager.paginate(sid, STRANGER, PageDirection.NEXT)
        assert manager.page(sid).page == 0

    def test_unknown_session(self, manager):
        """Should treat unknown ids as expired."""
        with pytest.raises(SessionExpiredError):
            manager.page("missing")

    def test_same_millisecond_sessions_get_distinct_ids(self, manager):
        """Should not overwrite a session created in the same instant."""
        now = datetime(2024, 1, 1, tzinfo=UTC)
        first = manager.create_session(OWNER, "a", _results(1), now=now)
        second = manager.create_session(OWNER, "b", _results(1), now=now)

        assert first != second
        assert manager.session_count == 2

    def test_cancel(self, manager):
        """Should drop the session for its owner only."""
        sid = manager.create_session(OWNER, "query", _results(3))

        with pytest.raises(SessionUnauthorizedError):
            manager.cancel(sid, STRANGER)

        manager.cancel(sid, OWNER)
        assert manager.session_count == 0


class TestSelect:
    @pytest.mark.asyncio
    async def test_select_enqueues_and_consumes(self, manager):
        """Should hand the chosen track to enqueue and remove the session."""
        sid = manager.create_session(OWNER, "query", _results(7))
        manager.paginate(sid, OWNER, PageDirection.NEXT)
        enqueue = AsyncMock()

        track = await manager.select(sid, OWNER, 4, enqueue=enqueue)

        assert track.title == "Result 4"
        enqueue.assert_awaited_once_with(track)
        with pytest.raises(SessionExpiredError):
            manager.page(sid)

    @pytest.mark.asyncio
    async def test_stranger_cannot_select(self, manager):
        """Should refuse selections from other users."""
        sid = manager.create_session(OWNER, "query", _results(3))
        enqueue = AsyncMock()

        with pytest.raises(SessionUnauthorizedError):
            await manager.select(sid, STRANGER, 0, enqueue=enqueue)
        enqueue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_index_out_of_range(self, manager):
        """Should reject indices past the results."""
        sid = manager.create_session(OWNER, "query", _results(2))

        with pytest.raises(InvalidPositionError):
            await manager.select(sid, OWNER, 2, enqueue=AsyncMock())

    @pytest.mark.asyncio
    async def test_double_select_only_enqueues_once(self, manager):
        """Should let exactly one of two concurrent selections through."""
        sid = manager.create_session(OWNER, "query", _results(3))
        enqueue = AsyncMock()

        results = await asyncio.gather(
            manager.select(sid, OWNER, 0, enqueue=enqueue),
            manager.select(sid, OWNER, 1, enqueue=enqueue),
            return_exceptions=True,
        )

        assert enqueue.await_count == 1
        assert sum(isinstance(r, SessionExpiredError) for r in results) == 1

    @pytest.mark.asyncio
    async def test_failed_enqueue_keeps_session(self, manager):
        """Should keep the session usable when enqueueing fails."""
        sid = manager.create_session(OWNER, "query", _results(3))
        enqueue = AsyncMock(side_effect=RuntimeError("voice down"))

        with pytest.raises(RuntimeError):
            await manager.select(sid, OWNER, 0, enqueue=enqueue)

        assert manager.page(sid).total_results == 3


class TestExpiry:
    def test_sweep_removes_expired_sessions(self, manager):
        """Should remove sessions older than the TTL."""
        old = datetime.now(UTC) - timedelta(seconds=600)
        manager.create_session(OWNER, "old", _results(1), now=old)
        fresh = manager.create_session(OWNER, "fresh", _results(1))

        assert manager.sweep_expired() == 1
        assert manager.session_count == 1
        assert manager.page(fresh).query == "fresh"

    def test_expired_session_is_rejected_on_access(self, manager):
        """Should fail access to an expired session before any sweep."""
        old = datetime.now(UTC) - timedelta(seconds=600)
        sid = manager.create_session(OWNER, "old", _results(1), now=old)

        with pytest.raises(SessionExpiredError):
            manager.paginate(sid, OWNER, PageDirection.NEXT)
        assert manager.session_count == 0


class TestSweeper:
    @pytest.mark.asyncio
    async def test_start_and_stop(self, manager):
        """Should run the sweeper until stopped and then drop all sessions."""
        manager.create_session(OWNER, "query", _results(1))

        manager.start()
        assert manager.is_running
        manager.start()

        await manager.stop()
        assert not manager.is_running
        assert manager.session_count == 0
