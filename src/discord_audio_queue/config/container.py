"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the resolver, voice transport and application
services. Components are created on-demand and cached for reuse.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.interfaces.audio_resolver import AudioResolver
    from ..application.services.idle_reaper import IdleReaper
    from ..application.services.playback_service import PlaybackService
    from ..application.services.search_service import SearchSessionManager
    from ..infrastructure.discord.adapters.voice_transport import DiscordVoiceTransport
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed. The voice transport
    needs the bot, so ``set_bot()`` must run before anything that plays audio.
    """

    settings: Settings
    _bot: Bot | None = None

    # Infrastructure adapters
    _audio_resolver: AudioResolver | None = None
    _voice_transport: DiscordVoiceTransport | None = None

    # Application services
    _playback_service: PlaybackService | None = None
    _search_service: SearchSessionManager | None = None
    _idle_reaper: IdleReaper | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError("Bot not initialized. Call set_bot() first.")
        return self._bot

    # === Infrastructure Adapters ===

    @property
    def audio_resolver(self) -> AudioResolver:
        """Get the fallback-chain audio resolver."""
        if self._audio_resolver is None:
            from ..infrastructure.audio.fallback_resolver import build_default_resolver

            self._audio_resolver = build_default_resolver(self.settings.resolver, self.settings.audio)
        return self._audio_resolver

    @property
    def voice_transport(self) -> DiscordVoiceTransport:
        """Get the Discord voice transport."""
        if self._voice_transport is None:
            from ..infrastructure.discord.adapters.voice_transport import DiscordVoiceTransport

            self._voice_transport = DiscordVoiceTransport(self.bot, self.settings.audio)
        return self._voice_transport

    # === Application Services ===

    @property
    def playback_service(self) -> PlaybackService:
        """Get the playback service owning the guild player registry."""
        if self._playback_service is None:
            from ..application.services.playback_service import PlaybackService

            audio = self.settings.audio
            self._playback_service = PlaybackService(
                audio_resolver=self.audio_resolver,
                voice_transport=self.voice_transport,
                default_volume=audio.default_volume,
                advance_delay_seconds=audio.advance_delay_seconds,
                max_song_duration_seconds=audio.max_song_duration_seconds,
                max_playlist_items=audio.max_playlist_items,
            )
        return self._playback_service

    @property
    def search_service(self) -> SearchSessionManager:
        """Get the search session manager."""
        if self._search_service is None:
            from ..application.services.search_service import SearchSessionManager

            self._search_service = SearchSessionManager(
                audio_resolver=self.audio_resolver,
                session_ttl_seconds=self.settings.search.session_ttl_seconds,
                sweep_interval_seconds=self.settings.search.sweep_interval_seconds,
                result_limit=self.settings.resolver.search_result_limit,
            )
        return self._search_service

    @property
    def idle_reaper(self) -> IdleReaper:
        """Get the idle voice-channel reaper."""
        if self._idle_reaper is None:
            from ..application.services.idle_reaper import IdleReaper

            self._idle_reaper = IdleReaper(
                playback_service=self.playback_service,
                voice_transport=self.voice_transport,
                grace_seconds=self.settings.idle.disconnect_grace_seconds,
            )
        return self._idle_reaper

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Start background jobs."""
        self.search_service.start()

    async def shutdown(self) -> None:
        """Destroy every player and stop background jobs, then close the resolver."""
        if self._idle_reaper is not None:
            try:
                await self._idle_reaper.shutdown()
            except Exception as exc:
                logger.warning("Failed stopping idle reaper: %r", exc)

        if self._playback_service is not None:
            await self._playback_service.shutdown()

        if self._search_service is not None:
            try:
                await self._search_service.stop()
            except Exception as exc:
                logger.warning("Failed stopping search session sweeper: %r", exc)

        if self._audio_resolver is not None:
            await self._audio_resolver.close()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
