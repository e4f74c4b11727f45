"""Discord cogs - command handlers."""

from discord_audio_queue.infrastructure.discord.cogs.event_cog import EventCog
from discord_audio_queue.infrastructure.discord.cogs.music_cog import MusicCog
from discord_audio_queue.infrastructure.discord.cogs.search_cog import SearchCog

__all__ = [
    "MusicCog",
    "SearchCog",
    "EventCog",
]
