"""Voice channel guard functions for Discord cogs."""

from discord_audio_queue.infrastructure.discord.guards.voice_guards import (
    ensure_control_access,
    get_member,
    get_voice_channel_id,
    require_same_channel,
    send_ephemeral,
)

__all__ = [
    "ensure_control_access",
    "get_member",
    "get_voice_channel_id",
    "require_same_channel",
    "send_ephemeral",
]
