"""Per-guild playback controller.

Owns one ``PlaybackQueue`` and drives the voice transport through the
resolve-and-play cycle. Commands and transport events are serialized by a
per-player ``asyncio.Lock``; stream resolution and the advance delay happen
outside the lock so commands stay responsive while they are pending.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ...domain.music.entities import PlaybackQueue, Track
from ...domain.music.value_objects import PlaybackState
from ...domain.shared.exceptions import (
    ConnectionDeniedError,
    DomainError,
    InvalidOperationError,
    QueueEmptyError,
)
from ...domain.shared.messages import LogTemplates
from ..interfaces.voice_transport import TransportEvent, TransportHandle, TransportSignal
from .queue_models import QueueSnapshot

if TYPE_CHECKING:
    from ..interfaces.audio_resolver import AudioResolver
    from ..interfaces.voice_transport import VoiceTransport

logger = logging.getLogger(__name__)


class GuildPlayer:
    def __init__(
        self,
        guild_id: int,
        *,
        audio_resolver: AudioResolver,
        voice_transport: VoiceTransport,
        default_volume: int = 50,
        advance_delay_seconds: float = 1.0,
    ) -> None:
        self._resolver = audio_resolver
        self._transport = voice_transport
        self._advance_delay = advance_delay_seconds
        self.queue = PlaybackQueue(guild_id=guild_id)
        self.queue.set_volume(default_volume)

        self._lock = asyncio.Lock()
        self._handle: TransportHandle | None = None
        self._playback_task: asyncio.Task[None] | None = None
        self._events_task: asyncio.Task[None] | None = None

    # ── Introspection ───────────────────────────────────────────────

    @property
    def guild_id(self) -> int:
        return self.queue.guild_id

    @property
    def state(self) -> PlaybackState:
        return self.queue.state

    @property
    def handle(self) -> TransportHandle | None:
        return self._handle

    @property
    def channel_id(self) -> int | None:
        return self._handle.channel_id if self._handle and self._handle.active else None

    @property
    def is_destroyed(self) -> bool:
        return self.queue.is_destroyed

    @property
    def has_pending_playback(self) -> bool:
        return self._playback_task is not None and not self._playback_task.done()

    def now_playing(self) -> Track | None:
        return self.queue.current

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            guild_id=self.guild_id,
            current_track=self.queue.current,
            upcoming_tracks=self.queue.upcoming,
            total_duration_seconds=self.queue.total_duration_seconds,
            loop_current=self.queue.loop_current,
            volume_percent=self.queue.volume_percent,
            state=self.queue.state,
        )

    async def wait_until_settled(self) -> None:
        """Wait for any scheduled or in-flight playback attempt to finish."""
        task = self._playback_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    # ── Connection ──────────────────────────────────────────────────

    async def connect(self, channel_id: int) -> TransportHandle:
        """Attach to ``channel_id``. Same channel is a no-op; another channel is a move."""
        async with self._lock:
            self._ensure_alive("connect")
            handle = self._handle
            if handle is not None and handle.active and handle.channel_id == channel_id:
                return handle

            first_join = handle is None or not handle.active
            if first_join and self.queue.state is PlaybackState.IDLE:
                self.queue.transition_to(PlaybackState.CONNECTING)

            try:
                new_handle = await self._transport.connect(self.guild_id, channel_id)
            except ConnectionDeniedError:
                if self.queue.state is PlaybackState.CONNECTING:
                    self.queue.transition_to(PlaybackState.IDLE)
                logger.warning(LogTemplates.VOICE_CONNECT_DENIED, self.guild_id, channel_id)
                raise

            if new_handle is not self._handle:
                self._attach_handle(new_handle)
            logger.info(LogTemplates.VOICE_CONNECTED, self.guild_id, channel_id)

            if self.queue.state is PlaybackState.CONNECTING:
                self.queue.transition_to(PlaybackState.IDLE)
            if self.queue.state is PlaybackState.IDLE and not self.queue.is_empty:
                self._schedule_playback(delay=0)
            return new_handle

    def _attach_handle(self, handle: TransportHandle) -> None:
        self._cancel_events_task()
        self._handle = handle
        self._events_task = asyncio.create_task(
            self._consume_events(handle), name=f"guild-player-events-{self.guild_id}"
        )

    # ── Queue commands ──────────────────────────────────────────────

    async def enqueue(self, track: Track) -> Track:
        """Append ``track`` and start playback if the player is idle and connected."""
        async with self._lock:
            self._ensure_alive("enqueue")
            stored = self.queue.append(track)
            logger.info(LogTemplates.TRACK_ENQUEUED, stored.title, self.guild_id, self.queue.length)
            if (
                self.queue.state is PlaybackState.IDLE
                and self._handle is not None
                and self._handle.active
                and not self.has_pending_playback
            ):
                self._schedule_playback(delay=0)
            return stored

    async def pause(self) -> bool:
        async with self._lock:
            if self.queue.state is not PlaybackState.PLAYING or self._handle is None:
                return False
            if not await self._transport.pause(self._handle):
                return False
            self.queue.transition_to(PlaybackState.PAUSED)
            logger.info(LogTemplates.PLAYBACK_PAUSED, self.guild_id)
            return True

    async def resume(self) -> bool:
        async with self._lock:
            if self.queue.state is not PlaybackState.PAUSED or self._handle is None:
                return False
            if not await self._transport.resume(self._handle):
                return False
            self.queue.transition_to(PlaybackState.PLAYING)
            logger.info(LogTemplates.PLAYBACK_RESUMED, self.guild_id)
            return True

    async def skip(self) -> Track:
        """End the current track now. Loop mode does not bring it back."""
        async with self._lock:
            current = self.queue.current
            if current is None or self.queue.is_destroyed:
                raise QueueEmptyError(self.guild_id)

            handle = self._handle
            if handle is not None:
                # Invalidates the IDLE our own stop is about to produce.
                handle.next_generation()
                if self.queue.state.is_active:
                    await self._transport.stop_playback(handle)
            self._cancel_playback_task()
            logger.info(LogTemplates.TRACK_SKIPPED, current.title, self.guild_id)
            self._finish_current(skipped=True)
            return current

    async def stop(self) -> None:
        """Clear everything and release the transport. Safe to call repeatedly."""
        async with self._lock:
            if self.queue.is_destroyed:
                return
            self._cancel_playback_task()
            self.queue.clear_all()
            self.queue.transition_to(PlaybackState.DESTROYED)
            handle, self._handle = self._handle, None
            if handle is not None:
                handle.next_generation()
                try:
                    await self._transport.release(handle)
                except Exception as exc:
                    logger.warning(LogTemplates.VOICE_RELEASE_FAILED, self.guild_id, exc)
                handle.active = False
            logger.info(LogTemplates.PLAYER_DESTROYED, self.guild_id)
        self._cancel_events_task()

    async def clear(self) -> int:
        async with self._lock:
            removed = self.queue.clear_upcoming()
            logger.info(LogTemplates.QUEUE_CLEARED, self.guild_id, removed)
            return removed

    async def remove_song(self, position: int) -> Track:
        """Remove a track by its 1-based position. Position 1 must be skipped instead."""
        async with self._lock:
            removed = self.queue.remove_at(position)
            logger.info(LogTemplates.TRACK_REMOVED, removed.title, position, self.guild_id)
            return removed

    async def shuffle(self) -> bool:
        async with self._lock:
            shuffled = self.queue.shuffle_upcoming()
            if shuffled:
                logger.info(LogTemplates.QUEUE_SHUFFLED, self.guild_id, self.queue.length - 1)
            return shuffled

    async def set_volume(self, volume: int) -> int:
        async with self._lock:
            applied = self.queue.set_volume(volume)
            if self._handle is not None and self.queue.state.is_active:
                await self._transport.set_volume(self._handle, applied)
            logger.info(LogTemplates.VOLUME_CHANGED, self.guild_id, applied)
            return applied

    async def set_loop(self, enabled: bool) -> bool:
        async with self._lock:
            return self.queue.set_loop(enabled)

    async def toggle_loop(self) -> bool:
        async with self._lock:
            enabled = self.queue.toggle_loop()
            logger.info(LogTemplates.LOOP_TOGGLED, self.guild_id, enabled)
            return enabled

    # ── Playback cycle ──────────────────────────────────────────────

    def _schedule_playback(self, delay: float) -> None:
        """Start the single in-flight playback attempt. Caller holds the lock."""
        if self.has_pending_playback:
            return
        self.queue.transition_to(PlaybackState.RESOLVING)
        self._playback_task = asyncio.create_task(
            self._run_playback(delay), name=f"guild-player-playback-{self.guild_id}"
        )

    async def _run_playback(self, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)

        while True:
            async with self._lock:
                if self.queue.is_destroyed:
                    return
                track = self.queue.current
                handle = self._handle
                if track is None or handle is None or not handle.active:
                    self.queue.transition_to(PlaybackState.IDLE)
                    return

            try:
                stream = await self._resolver.get_audio_source(track)
            except asyncio.CancelledError:
                raise
            except DomainError as exc:
                logger.warning(LogTemplates.STREAM_RESOLVE_FAILED, track.title, self.guild_id, exc.message)
                await self._drop_failed(track)
                continue
            except Exception:
                logger.exception(LogTemplates.STREAM_RESOLVE_FAILED, track.title, self.guild_id, "unexpected error")
                await self._drop_failed(track)
                continue

            async with self._lock:
                if self.queue.is_destroyed:
                    return
                if self.queue.current is not track or handle is not self._handle:
                    continue

                current = self.queue.enrich_current(stream.thumbnail_url, stream.uploader) or track
                handle.next_generation()
                try:
                    accepted = await self._transport.play(handle, stream, self.queue.volume_percent)
                except Exception:
                    logger.exception(LogTemplates.TRANSPORT_PLAY_FAILED, current.title, self.guild_id)
                    accepted = False

                if accepted:
                    self.queue.transition_to(PlaybackState.PLAYING)
                    logger.info(LogTemplates.TRACK_STARTED, current.title, self.guild_id, stream.source)
                    return

                logger.warning(LogTemplates.TRANSPORT_REJECTED, current.title, self.guild_id)
                self.queue.drop_current()

    async def _drop_failed(self, track: Track) -> None:
        async with self._lock:
            if self.queue.current is track:
                self.queue.drop_current()

    def _finish_current(self, *, skipped: bool, failed: bool = False) -> None:
        """End-of-track transition shared by natural completion and skip. Caller holds the lock.

        A looped track whose stream failed is replayed after ``advance_delay``
        instead of at once.
        """
        current = self.queue.current
        if current is not None and self.queue.loop_current and not skipped:
            logger.debug(LogTemplates.TRACK_LOOPING, current.title, self.guild_id)
            self._schedule_playback(delay=self._advance_delay if failed else 0)
            return

        self.queue.drop_current()
        if self.queue.is_empty:
            self.queue.transition_to(PlaybackState.IDLE)
            logger.info(LogTemplates.QUEUE_FINISHED, self.guild_id)
            return
        self._schedule_playback(delay=self._advance_delay)

    async def _consume_events(self, handle: TransportHandle) -> None:
        while True:
            signal = await handle.events.get()
            async with self._lock:
                if self.queue.is_destroyed:
                    return
                self._handle_signal(handle, signal)

    def _handle_signal(self, handle: TransportHandle, signal: TransportSignal) -> None:
        if handle is not self._handle or signal.generation != handle.generation:
            logger.debug(LogTemplates.STALE_TRANSPORT_EVENT, signal.event.value, self.guild_id)
            return

        if signal.event is TransportEvent.ERROR:
            logger.warning(LogTemplates.TRANSPORT_ERROR, self.guild_id, signal.error)

        if signal.event in (TransportEvent.IDLE, TransportEvent.ERROR):
            if self.queue.state.is_active:
                # Retire this generation so a trailing IDLE after ERROR is ignored.
                handle.next_generation()
                self._finish_current(skipped=False, failed=signal.event is TransportEvent.ERROR)

    # ── Task housekeeping ───────────────────────────────────────────

    def _cancel_playback_task(self) -> None:
        task, self._playback_task = self._playback_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _cancel_events_task(self) -> None:
        task, self._events_task = self._events_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _ensure_alive(self, operation: str) -> None:
        if self.queue.is_destroyed:
            raise InvalidOperationError(operation=operation, current_state=self.queue.state.value)
