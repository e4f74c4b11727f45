"""Reusable voice-channel guard functions for Discord slash commands.

These are free functions that accept explicit dependencies rather than relying
on a specific cog instance, making them usable from any cog or view.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from discord_audio_queue.domain.shared.exceptions import NotInSameChannelError
from discord_audio_queue.domain.shared.messages import DiscordUIMessages

if TYPE_CHECKING:
    from ....application.interfaces.voice_transport import VoiceTransport


async def send_ephemeral(interaction: discord.Interaction, message: str) -> None:
    """Send an ephemeral message, handling both fresh and already-responded interactions."""
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=True)
    else:
        await interaction.response.send_message(message, ephemeral=True)


async def get_member(interaction: discord.Interaction) -> discord.Member | None:
    """Validate that the interaction comes from a guild member. Returns None with error on failure."""
    if not interaction.guild:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
        return None

    user = interaction.user
    if not isinstance(user, discord.Member):
        await send_ephemeral(interaction, DiscordUIMessages.STATE_VERIFY_VOICE_FAILED)
        return None

    return user


async def get_voice_channel_id(interaction: discord.Interaction) -> int | None:
    """Return the caller's voice channel id, or None after telling them to join one."""
    member = await get_member(interaction)
    if member is None:
        return None

    if not member.voice or not member.voice.channel:
        await send_ephemeral(interaction, DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)
        return None

    return member.voice.channel.id


def require_same_channel(
    member: discord.Member, guild_id: int, voice_transport: VoiceTransport
) -> None:
    """Raise ``NotInSameChannelError`` unless ``member`` is in the bot's voice channel.

    When the bot is not connected anywhere there is nothing to control, so any
    member in a voice channel passes.
    """
    if not member.voice or not member.voice.channel:
        raise NotInSameChannelError(DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)

    bot_channel_id = voice_transport.get_channel_id(guild_id)
    if bot_channel_id is not None and member.voice.channel.id != bot_channel_id:
        raise NotInSameChannelError(DiscordUIMessages.STATE_MUST_BE_IN_VOICE)


async def ensure_control_access(
    interaction: discord.Interaction, voice_transport: VoiceTransport
) -> discord.Member | None:
    """Guard for control commands: guild member in the bot's voice channel."""
    member = await get_member(interaction)
    if member is None:
        return None

    assert interaction.guild is not None
    require_same_channel(member, interaction.guild.id, voice_transport)
    return member
