"""Discord adapters implementing application ports."""

from discord_audio_queue.infrastructure.discord.adapters.voice_transport import (
    DiscordVoiceTransport,
)

__all__ = ["DiscordVoiceTransport"]
