"""Slash-command music cog delegating to the playback service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from discord_audio_queue.domain.shared.exceptions import DomainError
from discord_audio_queue.domain.shared.messages import DiscordUIMessages, ErrorMessages
from discord_audio_queue.infrastructure.discord.guards.voice_guards import (
    ensure_control_access,
    get_voice_channel_id,
    require_same_channel,
    send_ephemeral,
)
from discord_audio_queue.infrastructure.discord.views.now_playing_view import NowPlayingView
from discord_audio_queue.utils.reply import format_duration, truncate

if TYPE_CHECKING:
    from ....application.services.guild_player import GuildPlayer
    from ....application.services.queue_models import EnqueueResult
    from ....config.container import Container
    from ....domain.music.entities import Track

logger = logging.getLogger(__name__)

QUEUE_PER_PAGE = 10


def format_requester(track: Track) -> str:
    if track.requested_by_id:
        return f"<@{track.requested_by_id}>"
    if track.requested_by_name:
        return track.requested_by_name
    return "Unknown"


def build_now_playing_embed(
    track: Track, *, loop_current: bool = False, volume_percent: int | None = None
) -> discord.Embed:
    embed = discord.Embed(
        title=DiscordUIMessages.EMBED_NOW_PLAYING,
        description=f"[{truncate(track.title, 200)}]({track.webpage_url})\n"
        f"Requested by: {format_requester(track)}",
        color=discord.Color.green(),
    )
    if track.thumbnail_url:
        embed.set_thumbnail(url=track.thumbnail_url)

    embed.add_field(name="⏱️ Duration", value=track.duration_formatted, inline=True)
    if track.uploader:
        embed.add_field(name="🎤 Uploader", value=truncate(track.uploader, 60), inline=True)
    if volume_percent is not None:
        embed.add_field(name="🔊 Volume", value=f"{volume_percent}%", inline=True)
    if loop_current:
        embed.add_field(name="🔂 Loop", value="On", inline=True)
    return embed


def format_enqueue_reply(result: EnqueueResult) -> str:
    track = result.track
    assert track is not None
    title = truncate(track.title, 80)

    if result.is_playlist:
        reply = DiscordUIMessages.ACTION_PLAYLIST_QUEUED.format(count=len(result.tracks))
        if result.skipped:
            reply += DiscordUIMessages.ACTION_PLAYLIST_SKIPPED_SUFFIX.format(skipped=result.skipped)
        return reply
    if result.started_playback:
        return DiscordUIMessages.ACTION_NOW_PLAYING.format(title=title)
    return DiscordUIMessages.ACTION_QUEUED.format(title=title, position=result.position)


class MusicCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    async def _get_player(self, interaction: discord.Interaction) -> GuildPlayer | None:
        """The caller's guild player, after the same-channel check. None when nothing is queued."""
        if await ensure_control_access(interaction, self.container.voice_transport) is None:
            return None

        assert interaction.guild is not None
        player = self.container.playback_service.get_player(interaction.guild.id)
        if player is None or player.is_destroyed:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOTHING_PLAYING)
            return None
        return player

    # ── Enqueue ─────────────────────────────────────────────────────

    @app_commands.command(name="play", description="Play a song or playlist by URL or search query.")
    @app_commands.describe(query="YouTube/SoundCloud URL, playlist URL or search query")
    async def play(self, interaction: discord.Interaction, query: str) -> None:
        channel_id = await get_voice_channel_id(interaction)
        if channel_id is None:
            return

        assert interaction.guild is not None
        assert isinstance(interaction.user, discord.Member)

        playback_service = self.container.playback_service
        player = playback_service.get_player(interaction.guild.id)
        if player is not None and not player.queue.is_empty:
            require_same_channel(interaction.user, interaction.guild.id, self.container.voice_transport)

        # Resolution and voice connect can exceed the 3-second interaction deadline
        await interaction.response.defer()

        try:
            result = await playback_service.play(
                guild_id=interaction.guild.id,
                channel_id=channel_id,
                query=query,
                requester_id=interaction.user.id,
                requester_name=interaction.user.display_name,
            )
        except DomainError as exc:
            logger.info("Play request failed in guild %s: %s", interaction.guild.id, exc.message)
            await interaction.followup.send(
                DiscordUIMessages.ERROR_GENERIC.format(error=exc.message), ephemeral=True
            )
            return

        track = result.track
        assert track is not None
        if result.started_playback and not result.is_playlist:
            view = NowPlayingView(guild_id=interaction.guild.id, container=self.container)
            message = await interaction.followup.send(
                embed=build_now_playing_embed(track), view=view, wait=True
            )
            view.set_message(message)
        else:
            await interaction.followup.send(format_enqueue_reply(result))

    # ── Transport control ───────────────────────────────────────────

    @app_commands.command(name="pause", description="Pause playback.")
    async def pause(self, interaction: discord.Interaction) -> None:
        player = await self._get_player(interaction)
        if player is None:
            return

        if await player.pause():
            await interaction.response.send_message(DiscordUIMessages.ACTION_PAUSED)
        else:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_PLAYING)

    @app_commands.command(name="resume", description="Resume paused playback.")
    async def resume(self, interaction: discord.Interaction) -> None:
        player = await self._get_player(interaction)
        if player is None:
            return

        if await player.resume():
            await interaction.response.send_message(DiscordUIMessages.ACTION_RESUMED)
        else:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_PAUSED)

    @app_commands.command(name="skip", description="Skip the current track.")
    async def skip(self, interaction: discord.Interaction) -> None:
        player = await self._get_player(interaction)
        if player is None:
            return

        skipped = await player.skip()
        await interaction.response.send_message(
            DiscordUIMessages.ACTION_SKIPPED.format(title=truncate(skipped.title, 80))
        )

    @app_commands.command(name="stop", description="Stop playback, clear the queue and leave.")
    async def stop(self, interaction: discord.Interaction) -> None:
        if await ensure_control_access(interaction, self.container.voice_transport) is None:
            return

        assert interaction.guild is not None
        destroyed = await self.container.playback_service.destroy(interaction.guild.id)
        if not destroyed:
            destroyed = await self.container.voice_transport.disconnect_guild(interaction.guild.id)
        self.container.idle_reaper.cancel(interaction.guild.id)

        if destroyed:
            await interaction.response.send_message(DiscordUIMessages.ACTION_STOPPED)
        else:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_CONNECTED_TO_VOICE)

    # ── Queue management ────────────────────────────────────────────

    @app_commands.command(name="queue", description="Show the current queue.")
    @app_commands.describe(page="Page number")
    async def queue(self, interaction: discord.Interaction, page: int = 1) -> None:
        if not interaction.guild:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        player = self.container.playback_service.get_player(interaction.guild.id)
        snapshot = player.snapshot() if player is not None else None
        if snapshot is None or snapshot.is_empty:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_QUEUE_EMPTY)
            return

        total_pages = snapshot.page_count(QUEUE_PER_PAGE)
        page = max(1, min(page, total_pages))

        embed = discord.Embed(
            title=DiscordUIMessages.EMBED_QUEUE.format(
                total_tracks=snapshot.total_tracks, page=page, total_pages=total_pages
            ),
            color=discord.Color.blurple(),
        )

        current = snapshot.current_track
        assert current is not None
        embed.add_field(
            name="\U0001f3b5 Now Playing",
            value=f"**{truncate(current.title)}**\n"
            f"Duration: {current.duration_formatted}",
            inline=False,
        )

        for position, track in snapshot.page(page, QUEUE_PER_PAGE):
            embed.add_field(
                name=f"{position}. {truncate(track.title)}",
                value=f"{track.duration_formatted} · "
                f"Requested by: {track.requested_by_name or 'Unknown'}",
                inline=False,
            )

        footer = f"Total duration: {format_duration(snapshot.total_duration_seconds)}"
        if snapshot.loop_current:
            footer += " · 🔂 Loop on"
        embed.set_footer(text=footer)

        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="clear", description="Remove every upcoming track.")
    async def clear(self, interaction: discord.Interaction) -> None:
        player = await self._get_player(interaction)
        if player is None:
            return

        count = await player.clear()
        if count > 0:
            await interaction.response.send_message(
                DiscordUIMessages.ACTION_QUEUE_CLEARED.format(count=count)
            )
        else:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_QUEUE_ALREADY_EMPTY)

    @app_commands.command(name="remove", description="Remove a track from the queue.")
    @app_commands.describe(position="Position in queue (2 is the next track)")
    async def remove(self, interaction: discord.Interaction, position: int) -> None:
        player = await self._get_player(interaction)
        if player is None:
            return

        if position < 1:
            await send_ephemeral(interaction, ErrorMessages.POSITION_MUST_BE_POSITIVE)
            return

        removed = await player.remove_song(position)
        await interaction.response.send_message(
            DiscordUIMessages.ACTION_TRACK_REMOVED.format(title=truncate(removed.title, 80))
        )

    @app_commands.command(name="shuffle", description="Shuffle the upcoming tracks.")
    async def shuffle(self, interaction: discord.Interaction) -> None:
        player = await self._get_player(interaction)
        if player is None:
            return

        if await player.shuffle():
            await interaction.response.send_message(DiscordUIMessages.ACTION_SHUFFLED)
        else:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_ENOUGH_TRACKS_TO_SHUFFLE)

    @app_commands.command(name="loop", description="Toggle looping of the current track.")
    async def loop(self, interaction: discord.Interaction) -> None:
        player = await self._get_player(interaction)
        if player is None:
            return

        enabled = await player.toggle_loop()
        message = DiscordUIMessages.ACTION_LOOP_ON if enabled else DiscordUIMessages.ACTION_LOOP_OFF
        await interaction.response.send_message(message)

    @app_commands.command(name="volume", description="Set the playback volume.")
    @app_commands.describe(level="Volume from 1 to 100")
    async def volume(
        self, interaction: discord.Interaction, level: app_commands.Range[int, 1, 100]
    ) -> None:
        player = await self._get_player(interaction)
        if player is None:
            return

        applied = await player.set_volume(level)
        await interaction.response.send_message(
            DiscordUIMessages.ACTION_VOLUME_SET.format(volume=applied)
        )

    @app_commands.command(name="nowplaying", description="Show the track that is playing.")
    async def nowplaying(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        player = self.container.playback_service.get_player(interaction.guild.id)
        track = player.now_playing() if player is not None else None
        if player is None or track is None:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOTHING_PLAYING)
            return

        embed = build_now_playing_embed(
            track, loop_current=player.queue.loop_current, volume_percent=player.queue.volume_percent
        )
        view = NowPlayingView(guild_id=interaction.guild.id, container=self.container)
        await interaction.response.send_message(embed=embed, view=view)
        view.set_message(await interaction.original_response())


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(MusicCog(bot, container))
