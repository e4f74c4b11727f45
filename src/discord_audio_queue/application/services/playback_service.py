"""Playback Application Service - owns the guild player registry and the enqueue path."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ...domain.music.services import QueryClassifier, TrackDurationPolicy
from ...domain.music.value_objects import QueryKind
from ...domain.shared.exceptions import (
    ConnectionDeniedError,
    DomainError,
    TrackNotFoundError,
)
from ...domain.shared.messages import ErrorMessages, LogTemplates
from .guild_player import GuildPlayer
from .queue_models import EnqueueResult

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ..interfaces.audio_resolver import AudioResolver
    from ..interfaces.voice_transport import VoiceTransport

logger = logging.getLogger(__name__)


class PlaybackService:
    """Resolves requests, validates tracks and routes them into per-guild players."""

    def __init__(
        self,
        *,
        audio_resolver: AudioResolver,
        voice_transport: VoiceTransport,
        default_volume: int = 50,
        advance_delay_seconds: float = 1.0,
        max_song_duration_seconds: int = 3600,
        max_playlist_items: int = 50,
    ) -> None:
        self._resolver = audio_resolver
        self._transport = voice_transport
        self._default_volume = default_volume
        self._advance_delay = advance_delay_seconds
        self._max_playlist_items = max_playlist_items
        self._duration_policy = TrackDurationPolicy(max_song_duration_seconds)
        self._players: dict[int, GuildPlayer] = {}

    # ── Registry ────────────────────────────────────────────────────

    def get_player(self, guild_id: int) -> GuildPlayer | None:
        return self._players.get(guild_id)

    def get_or_create_player(self, guild_id: int) -> GuildPlayer:
        """Synchronous so two concurrent first requests share one player."""
        player = self._players.get(guild_id)
        if player is None:
            player = GuildPlayer(
                guild_id,
                audio_resolver=self._resolver,
                voice_transport=self._transport,
                default_volume=self._default_volume,
                advance_delay_seconds=self._advance_delay,
            )
            self._players[guild_id] = player
            logger.debug(LogTemplates.PLAYER_CREATED, guild_id)
        return player

    @property
    def active_guild_ids(self) -> list[int]:
        return list(self._players)

    async def destroy(self, guild_id: int) -> bool:
        """Stop the guild's player, release its transport and forget it."""
        player = self._players.pop(guild_id, None)
        if player is None:
            return False
        await player.stop()
        return True

    async def shutdown(self) -> None:
        guild_ids = list(self._players)
        results = await asyncio.gather(*(self.destroy(g) for g in guild_ids), return_exceptions=True)
        for guild_id, result in zip(guild_ids, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(LogTemplates.PLAYER_SHUTDOWN_FAILED, guild_id, result)

    # ── Enqueue path ────────────────────────────────────────────────

    async def play(
        self,
        *,
        guild_id: int,
        channel_id: int,
        query: str,
        requester_id: int,
        requester_name: str,
    ) -> EnqueueResult:
        """Resolve ``query`` (track or playlist), join the caller's channel and enqueue.

        Resolution and validation happen before connecting, so a failed request
        leaves the queue untouched.
        """
        kind = QueryClassifier.classify(query)
        query = query.strip()
        logger.info(LogTemplates.PLAY_REQUESTED, guild_id, kind.value, query)

        skipped = 0
        if kind is QueryKind.PLAYLIST_URL:
            members = await self._resolver.expand_playlist(query, self._max_playlist_items)
            tracks: list[Track] = []
            for member in members:
                try:
                    tracks.append(self._duration_policy.validate(member))
                except DomainError as exc:
                    skipped += 1
                    logger.debug(LogTemplates.PLAYLIST_MEMBER_SKIPPED, member.title, exc.message)
            if not tracks:
                raise TrackNotFoundError(ErrorMessages.PLAYLIST_EMPTY)
        else:
            track = await self._resolver.resolve(query)
            tracks = [self._duration_policy.validate(track)]

        return await self._enqueue_tracks(
            guild_id=guild_id,
            channel_id=channel_id,
            tracks=tracks,
            requester_id=requester_id,
            requester_name=requester_name,
            skipped=skipped,
        )

    async def enqueue_track(
        self,
        *,
        guild_id: int,
        channel_id: int,
        track: Track,
        requester_id: int,
        requester_name: str,
    ) -> EnqueueResult:
        """Enqueue an already resolved track, e.g. a search selection."""
        validated = self._duration_policy.validate(track)
        return await self._enqueue_tracks(
            guild_id=guild_id,
            channel_id=channel_id,
            tracks=[validated],
            requester_id=requester_id,
            requester_name=requester_name,
        )

    async def _enqueue_tracks(
        self,
        *,
        guild_id: int,
        channel_id: int,
        tracks: list[Track],
        requester_id: int,
        requester_name: str,
        skipped: int = 0,
    ) -> EnqueueResult:
        player = self.get_or_create_player(guild_id)
        was_empty = player.queue.is_empty

        try:
            await player.connect(channel_id)
        except ConnectionDeniedError:
            if player.queue.is_empty and player.handle is None:
                await self.destroy(guild_id)
            raise

        stored: list[Track] = []
        for track in tracks:
            stored.append(await player.enqueue(track.with_requester(requester_id, requester_name)))

        position = player.queue.length - len(stored) + 1
        return EnqueueResult(
            tracks=stored,
            position=position,
            queue_length=player.queue.length,
            started_playback=was_empty,
            skipped=skipped,
        )
