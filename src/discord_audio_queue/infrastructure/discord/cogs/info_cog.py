"""Utility slash commands: /ping and /help."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from discord_audio_queue.domain.shared.messages import DiscordUIMessages, ErrorMessages

if TYPE_CHECKING:
    from ....config.container import Container

LATENCY_OK_MS = 200
LATENCY_WARN_MS = 800
ONE_THOUSAND = 1000.0

HELP_SECTIONS: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    (
        "🎵 Music",
        (
            ("/play <query>", "Play a song or playlist, or add it to the queue"),
            ("/search <query>", "Search and pick from up to 15 results"),
            ("/pause", "Pause the current track"),
            ("/resume", "Resume a paused track"),
            ("/skip", "Skip the current track"),
            ("/stop", "Stop playback, clear the queue and leave"),
            ("/nowplaying", "Show the current track with playback controls"),
        ),
    ),
    (
        "🎛️ Queue",
        (
            ("/queue [page]", "Show the queue, 10 tracks per page"),
            ("/clear", "Remove every upcoming track"),
            ("/remove <position>", "Remove one upcoming track"),
            ("/shuffle", "Shuffle the upcoming tracks"),
            ("/loop", "Toggle looping of the current track"),
            ("/volume <1-100>", "Set the playback volume"),
        ),
    ),
    (
        "🔧 Utility",
        (
            ("/help", "Show this message"),
            ("/ping", "Check bot latency"),
        ),
    ),
)


def latency_emoji(ms: float) -> str:
    if ms < LATENCY_OK_MS:
        return "🟢"
    if ms < LATENCY_WARN_MS:
        return "🟠"
    return "🔴"


def build_help_embed() -> discord.Embed:
    embed = discord.Embed(title=DiscordUIMessages.EMBED_HELP, color=discord.Color.blue())
    for name, entries in HELP_SECTIONS:
        embed.add_field(
            name=name,
            value="\n".join(f"`{usage}` - {summary}" for usage, summary in entries),
            inline=False,
        )
    embed.set_footer(text=DiscordUIMessages.EMBED_HELP_FOOTER)
    return embed


class InfoCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    def _latency_ms(self) -> float:
        # Gateway latency is inf/nan until the first heartbeat is acknowledged.
        latency = self.bot.latency
        if latency is None or not math.isfinite(latency):
            return 0.0
        return round(latency * ONE_THOUSAND, 1)

    @app_commands.command(name="ping", description="Check bot latency.")
    async def ping(self, interaction: discord.Interaction) -> None:
        lat_ms = self._latency_ms()
        await interaction.response.send_message(
            DiscordUIMessages.PONG.format(emoji=latency_emoji(lat_ms), latency_ms=f"{lat_ms:.1f}"),
            ephemeral=True,
        )

    @app_commands.command(name="help", description="Show all available commands.")
    async def help_command(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message(embed=build_help_embed(), ephemeral=True)


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(InfoCog(bot, container))
