"""Discord voice transport implementing VoiceTransport with FFmpeg playback."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord

from discord_audio_queue.application.interfaces.voice_transport import (
    TransportEvent,
    TransportHandle,
    VoiceTransport,
)
from discord_audio_queue.config.settings import AudioSettings
from discord_audio_queue.domain.shared.exceptions import ConnectionDeniedError
from discord_audio_queue.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ....application.interfaces.audio_resolver import StreamHandle

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT: float = 10.0


def volume_to_gain(volume_percent: int) -> float:
    """Queue volume (0-100) to PCMVolumeTransformer gain (0.0-1.0)."""
    return max(0, min(100, volume_percent)) / 100


def build_ffmpeg_options(base: dict[str, str], http_headers: dict[str, str]) -> dict[str, str]:
    """FFmpeg before/after options, forwarding the extractor's HTTP headers to the input."""
    before_options = base.get("before_options", "")
    if http_headers:
        header_blob = "".join(f"{k}: {v}\r\n" for k, v in http_headers.items() if "\n" not in v)
        before_options = f'{before_options} -headers "{header_blob}"'.strip()
    return {"before_options": before_options, "options": base.get("options", "-vn")}


class DiscordVoiceTransport(VoiceTransport):
    def __init__(self, bot: discord.Client, settings: AudioSettings | None = None) -> None:
        self._bot = bot
        self._settings = settings or AudioSettings()
        self._handles: dict[int, TransportHandle] = {}

    def _get_guild(self, guild_id: int) -> discord.Guild | None:
        return self._bot.get_guild(guild_id)

    def _get_voice_client(self, guild_id: int) -> discord.VoiceClient | None:
        guild = self._get_guild(guild_id)
        if not guild:
            return None

        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    # ── Connection ──────────────────────────────────────────────────

    # TODO(integ): Test for connect/move/deny against a test guild with two voice channels
    # and a channel the bot lacks CONNECT permission in.
    async def connect(self, guild_id: int, channel_id: int) -> TransportHandle:
        guild = self._get_guild(guild_id)
        if not guild:
            logger.warning(LogTemplates.GUILD_NOT_FOUND, guild_id)
            raise ConnectionDeniedError(channel_id, "guild not available")

        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.VoiceChannel | discord.StageChannel):
            logger.warning(LogTemplates.CHANNEL_NOT_VOICE, channel_id)
            raise ConnectionDeniedError(channel_id, "not a voice channel")

        vc = self._get_voice_client(guild_id)
        if vc is not None and not vc.is_connected():
            logger.warning(LogTemplates.VOICE_STALE_CLEANUP, guild_id)
            await self._force_disconnect(vc)
            vc = None

        try:
            async with asyncio.timeout(CONNECT_TIMEOUT):
                if vc is None:
                    await channel.connect(self_deaf=True)
                elif vc.channel is None or vc.channel.id != channel_id:
                    await vc.move_to(channel)
                    logger.info(LogTemplates.VOICE_MOVED, guild_id, channel_id)
        except TimeoutError as exc:
            logger.error(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel_id)
            raise ConnectionDeniedError(channel_id, "timed out") from exc
        except discord.Forbidden as exc:
            logger.error(LogTemplates.VOICE_NO_PERMISSION, channel_id)
            raise ConnectionDeniedError(channel_id, "missing permissions") from exc
        except discord.ClientException as exc:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, exc)
            raise ConnectionDeniedError(channel_id, str(exc)) from exc

        handle = self._handles.get(guild_id)
        if handle is None or not handle.active:
            handle = TransportHandle(guild_id, channel_id, loop=self._bot.loop)
            self._handles[guild_id] = handle
        handle.channel_id = channel_id
        return handle

    async def release(self, handle: TransportHandle) -> None:
        handle.active = False
        if self._handles.get(handle.guild_id) is handle:
            del self._handles[handle.guild_id]

        vc = self._get_voice_client(handle.guild_id)
        if vc is None:
            return
        if vc.is_playing() or vc.is_paused():
            vc.stop()
        await vc.disconnect(force=True)
        logger.info(LogTemplates.VOICE_DISCONNECTED, handle.guild_id)

    async def disconnect_guild(self, guild_id: int) -> bool:
        handle = self._handles.get(guild_id)
        if handle is not None:
            await self.release(handle)
            return True
        vc = self._get_voice_client(guild_id)
        if vc is None:
            return False
        await self._force_disconnect(vc)
        return True

    async def _force_disconnect(self, vc: discord.VoiceClient) -> None:
        try:
            await vc.disconnect(force=True)
        except discord.ClientException as exc:
            logger.debug(LogTemplates.VOICE_CLIENT_ERROR, exc)

    def forget(self, guild_id: int) -> None:
        """Drop the handle after the platform disconnected us."""
        handle = self._handles.pop(guild_id, None)
        if handle is not None:
            handle.active = False

    # ── Playback ────────────────────────────────────────────────────

    async def play(self, handle: TransportHandle, stream: StreamHandle, volume_percent: int) -> bool:
        vc = self._get_voice_client(handle.guild_id)
        if vc is None or not handle.active:
            logger.warning(LogTemplates.VOICE_NOT_CONNECTED, handle.guild_id)
            return False

        if vc.is_playing() or vc.is_paused():
            vc.stop()

        options = build_ffmpeg_options(self._settings.ffmpeg_options, stream.http_headers)
        try:
            source = discord.FFmpegPCMAudio(stream.url, **options)
        except discord.ClientException as exc:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, exc)
            return False
        volume_source = discord.PCMVolumeTransformer(source, volume=volume_to_gain(volume_percent))

        generation = handle.generation

        def after_callback(error: Exception | None = None) -> None:
            if error:
                logger.warning(LogTemplates.PLAYBACK_ERROR, handle.guild_id, error)
                handle.emit(TransportEvent.ERROR, generation=generation, error=str(error))
            else:
                handle.emit(TransportEvent.IDLE, generation=generation)

        try:
            vc.play(volume_source, after=after_callback)
        except discord.ClientException as exc:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, exc)
            volume_source.cleanup()
            return False

        handle.emit(TransportEvent.PLAYING, generation=generation)
        return True

    async def stop_playback(self, handle: TransportHandle) -> None:
        vc = self._get_voice_client(handle.guild_id)
        if vc is not None and (vc.is_playing() or vc.is_paused()):
            vc.stop()

    async def pause(self, handle: TransportHandle) -> bool:
        vc = self._get_voice_client(handle.guild_id)
        if vc is None or not vc.is_playing():
            return False
        vc.pause()
        handle.emit(TransportEvent.PAUSED)
        return True

    async def resume(self, handle: TransportHandle) -> bool:
        vc = self._get_voice_client(handle.guild_id)
        if vc is None or not vc.is_paused():
            return False
        vc.resume()
        handle.emit(TransportEvent.PLAYING)
        return True

    async def set_volume(self, handle: TransportHandle, volume_percent: int) -> bool:
        vc = self._get_voice_client(handle.guild_id)
        if vc is None or not isinstance(vc.source, discord.PCMVolumeTransformer):
            return False
        vc.source.volume = volume_to_gain(volume_percent)
        return True

    # ── Occupancy ───────────────────────────────────────────────────

    def get_channel_id(self, guild_id: int) -> int | None:
        vc = self._get_voice_client(guild_id)
        if vc and vc.channel:
            return vc.channel.id
        return None

    def count_listeners(self, guild_id: int) -> int:
        vc = self._get_voice_client(guild_id)
        if not vc or not vc.channel:
            return 0
        return sum(1 for member in vc.channel.members if not member.bot)
