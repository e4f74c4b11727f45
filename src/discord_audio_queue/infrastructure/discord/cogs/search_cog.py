"""Slash-command cog for searching and picking a track from paged results."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from discord_audio_queue.domain.shared.exceptions import DomainError, NotInSameChannelError
from discord_audio_queue.domain.shared.messages import DiscordUIMessages, ErrorMessages
from discord_audio_queue.infrastructure.discord.guards.voice_guards import (
    get_voice_channel_id,
    require_same_channel,
)
from discord_audio_queue.infrastructure.discord.views.search_view import (
    SearchResultsView,
    build_search_embed,
)

if TYPE_CHECKING:
    from ....application.services.queue_models import EnqueueResult
    from ....config.container import Container
    from ....domain.music.entities import Track


class SearchCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    @app_commands.command(name="search", description="Search for a song and pick from the results.")
    @app_commands.describe(query="What to search for")
    async def search(self, interaction: discord.Interaction, query: str) -> None:
        if await get_voice_channel_id(interaction) is None:
            return

        await interaction.response.defer()

        search_service = self.container.search_service
        try:
            results = await search_service.search(query)
        except DomainError as exc:
            await interaction.followup.send(
                DiscordUIMessages.ERROR_GENERIC.format(error=exc.message), ephemeral=True
            )
            return

        session_id = search_service.create_session(interaction.user.id, query, results)
        view = SearchResultsView(
            session_id=session_id,
            search_service=search_service,
            enqueue=self._enqueue_selection,
            timeout=self.container.settings.search.session_ttl_seconds,
        )
        message = await interaction.followup.send(
            embed=build_search_embed(search_service.page(session_id)), view=view, wait=True
        )
        view.set_message(message)

    async def _enqueue_selection(
        self, interaction: discord.Interaction, track: Track
    ) -> EnqueueResult:
        """Route a picked result into the same enqueue path as /play."""
        member = interaction.user
        if (
            interaction.guild is None
            or not isinstance(member, discord.Member)
            or not member.voice
            or not member.voice.channel
        ):
            raise NotInSameChannelError(DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)

        playback_service = self.container.playback_service
        player = playback_service.get_player(interaction.guild.id)
        if player is not None and not player.queue.is_empty:
            require_same_channel(member, interaction.guild.id, self.container.voice_transport)

        return await playback_service.enqueue_track(
            guild_id=interaction.guild.id,
            channel_id=member.voice.channel.id,
            track=track,
            requester_id=member.id,
            requester_name=member.display_name,
        )


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(SearchCog(bot, container))
