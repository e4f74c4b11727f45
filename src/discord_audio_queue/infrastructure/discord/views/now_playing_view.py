"""Now-playing control panel: pause/resume, skip, stop, shuffle, loop and volume buttons."""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from discord_audio_queue.domain.music.value_objects import PlaybackState
from discord_audio_queue.domain.shared.exceptions import DomainError, NotInSameChannelError
from discord_audio_queue.domain.shared.messages import DiscordUIMessages
from discord_audio_queue.infrastructure.discord.guards.voice_guards import (
    get_member,
    require_same_channel,
    send_ephemeral,
)
from discord_audio_queue.infrastructure.discord.views.base_view import BaseInteractiveView
from discord_audio_queue.utils.reply import truncate

if TYPE_CHECKING:
    from ....application.services.guild_player import GuildPlayer
    from ....config.container import Container

VOLUME_STEP = 10


class NowPlayingView(BaseInteractiveView):
    """Buttons drive the guild's player. Only members in the bot's voice channel may press them."""

    def __init__(self, *, guild_id: int, container: Container, timeout: float | None = 300.0) -> None:
        super().__init__(timeout=timeout)
        self.guild_id = guild_id
        self.container = container
        self.refresh(container.playback_service.get_player(guild_id))

    def refresh(self, player: GuildPlayer | None) -> None:
        """Match the toggle labels to the player's paused and loop flags."""
        paused = player is not None and player.state is PlaybackState.PAUSED
        self.toggle_playback.label = "▶️ Resume" if paused else "⏸️ Pause"
        self.toggle_playback.style = (
            discord.ButtonStyle.success if paused else discord.ButtonStyle.secondary
        )

        looping = player is not None and bool(player.queue.loop_current)
        self.toggle_loop.label = "🔂 Loop: On" if looping else "➡️ Loop: Off"

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        member = await get_member(interaction)
        if member is None:
            return False
        try:
            require_same_channel(member, self.guild_id, self.container.voice_transport)
        except NotInSameChannelError as exc:
            await send_ephemeral(interaction, exc.message)
            return False
        return True

    async def _player(self, interaction: discord.Interaction) -> GuildPlayer | None:
        player = self.container.playback_service.get_player(self.guild_id)
        if player is None or player.is_destroyed:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOTHING_PLAYING)
            return None
        return player

    # ── Transport ───────────────────────────────────────────────────

    @discord.ui.button(label="⏸️ Pause", style=discord.ButtonStyle.secondary, row=0)
    async def toggle_playback(
        self, interaction: discord.Interaction, button: discord.ui.Button[NowPlayingView]
    ) -> None:
        player = await self._player(interaction)
        if player is None:
            return

        if player.state is PlaybackState.PAUSED:
            changed = await player.resume()
        else:
            changed = await player.pause()
        if not changed:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_PLAYING)
            return

        self.refresh(player)
        await interaction.response.edit_message(view=self)

    @discord.ui.button(label="⏭️ Skip", style=discord.ButtonStyle.primary, row=0)
    async def skip_track(
        self, interaction: discord.Interaction, button: discord.ui.Button[NowPlayingView]
    ) -> None:
        player = await self._player(interaction)
        if player is None:
            return

        try:
            skipped = await player.skip()
        except DomainError as exc:
            await send_ephemeral(interaction, DiscordUIMessages.ERROR_GENERIC.format(error=exc.message))
            return

        await interaction.response.send_message(
            DiscordUIMessages.ACTION_SKIPPED.format(title=truncate(skipped.title, 80))
        )

    @discord.ui.button(label="⏹️ Stop", style=discord.ButtonStyle.danger, row=0)
    async def stop_playback(
        self, interaction: discord.Interaction, button: discord.ui.Button[NowPlayingView]
    ) -> None:
        destroyed = await self.container.playback_service.destroy(self.guild_id)
        if not destroyed:
            await self.container.voice_transport.disconnect_guild(self.guild_id)
        self.container.idle_reaper.cancel(self.guild_id)

        self.stop()
        self._disable_buttons()
        await interaction.response.edit_message(
            content=DiscordUIMessages.ACTION_STOPPED, embed=None, view=self
        )

    # ── Queue ───────────────────────────────────────────────────────

    @discord.ui.button(label="🔀 Shuffle", style=discord.ButtonStyle.secondary, row=1)
    async def shuffle_queue(
        self, interaction: discord.Interaction, button: discord.ui.Button[NowPlayingView]
    ) -> None:
        player = await self._player(interaction)
        if player is None:
            return

        if await player.shuffle():
            await send_ephemeral(interaction, DiscordUIMessages.ACTION_SHUFFLED)
        else:
            await send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_ENOUGH_TRACKS_TO_SHUFFLE)

    @discord.ui.button(label="➡️ Loop: Off", style=discord.ButtonStyle.secondary, row=1)
    async def toggle_loop(
        self, interaction: discord.Interaction, button: discord.ui.Button[NowPlayingView]
    ) -> None:
        player = await self._player(interaction)
        if player is None:
            return

        await player.toggle_loop()
        self.refresh(player)
        await interaction.response.edit_message(view=self)

    @discord.ui.button(label="🔉 -10", style=discord.ButtonStyle.secondary, row=1)
    async def volume_down(
        self, interaction: discord.Interaction, button: discord.ui.Button[NowPlayingView]
    ) -> None:
        await self._step_volume(interaction, -VOLUME_STEP)

    @discord.ui.button(label="🔊 +10", style=discord.ButtonStyle.secondary, row=1)
    async def volume_up(
        self, interaction: discord.Interaction, button: discord.ui.Button[NowPlayingView]
    ) -> None:
        await self._step_volume(interaction, VOLUME_STEP)

    async def _step_volume(self, interaction: discord.Interaction, step: int) -> None:
        player = await self._player(interaction)
        if player is None:
            return

        applied = await player.set_volume(player.queue.volume_percent + step)
        await send_ephemeral(interaction, DiscordUIMessages.ACTION_VOLUME_SET.format(volume=applied))

    async def on_timeout(self) -> None:
        self._disable_buttons()
        await self._edit_view()
