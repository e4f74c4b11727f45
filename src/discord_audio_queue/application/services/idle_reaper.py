"""Disconnects from voice channels that nobody is listening in."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ..interfaces.voice_transport import VoiceTransport
    from .playback_service import PlaybackService

logger = logging.getLogger(__name__)


class IdleReaper:
    """One grace timer per guild, started when the bot's channel has no listeners."""

    def __init__(
        self,
        *,
        playback_service: PlaybackService,
        voice_transport: VoiceTransport,
        grace_seconds: float = 30,
    ) -> None:
        self._playback_service = playback_service
        self._transport = voice_transport
        self._grace_seconds = grace_seconds
        self._idle_timers: dict[int, asyncio.Task[None]] = {}

    def observe(self, guild_id: int) -> None:
        """Re-evaluate occupancy after a voice membership change."""
        if self._transport.get_channel_id(guild_id) is None:
            self._cancel_idle_timer(guild_id)
            return

        if self._transport.count_listeners(guild_id) > 0:
            self._cancel_idle_timer(guild_id)
            return

        timer = self._idle_timers.get(guild_id)
        if timer is not None and not timer.done():
            return

        logger.info(LogTemplates.IDLE_TIMER_STARTED, guild_id, self._grace_seconds)
        self._idle_timers[guild_id] = asyncio.create_task(
            self._reap_after_grace(guild_id), name=f"idle-reaper-{guild_id}"
        )

    def has_timer(self, guild_id: int) -> bool:
        timer = self._idle_timers.get(guild_id)
        return timer is not None and not timer.done()

    def cancel(self, guild_id: int) -> None:
        self._cancel_idle_timer(guild_id)

    def _cancel_idle_timer(self, guild_id: int) -> None:
        timer = self._idle_timers.pop(guild_id, None)
        if timer is not None and not timer.done() and timer is not asyncio.current_task():
            timer.cancel()
            logger.debug(LogTemplates.IDLE_TIMER_CANCELLED, guild_id)

    async def _reap_after_grace(self, guild_id: int) -> None:
        try:
            await asyncio.sleep(self._grace_seconds)

            if self._transport.get_channel_id(guild_id) is not None and self._transport.count_listeners(guild_id) > 0:
                logger.debug(LogTemplates.IDLE_TIMER_LISTENERS_BACK, guild_id)
                return

            logger.info(LogTemplates.IDLE_DISCONNECT, guild_id)
            destroyed = await self._playback_service.destroy(guild_id)
            if not destroyed:
                await self._release_orphan(guild_id)
        finally:
            if self._idle_timers.get(guild_id) is asyncio.current_task():
                del self._idle_timers[guild_id]

    async def _release_orphan(self, guild_id: int) -> None:
        """A voice connection with no player behind it still has to go."""
        await self._transport.disconnect_guild(guild_id)

    async def shutdown(self) -> None:
        timers = list(self._idle_timers.values())
        self._idle_timers.clear()
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
