"""Discord client wiring: container lifecycle, cog loading, command sync and shutdown."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from discord_audio_queue.domain.shared.exceptions import DomainError
from discord_audio_queue.domain.shared.messages import DiscordUIMessages, LogTemplates

if TYPE_CHECKING:
    from ...config.container import Container
    from ...config.settings import Settings

logger = logging.getLogger(__name__)

COGS = (
    "discord_audio_queue.infrastructure.discord.cogs.music_cog",
    "discord_audio_queue.infrastructure.discord.cogs.search_cog",
    "discord_audio_queue.infrastructure.discord.cogs.event_cog",
    "discord_audio_queue.infrastructure.discord.cogs.info_cog",
)


class MusicBot(commands.Bot):
    """Slash-command-only bot. Needs guild and voice-state intents, nothing privileged."""

    def __init__(self, container: Container, settings: Settings, **kwargs) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.voice_states = True

        super().__init__(
            command_prefix=settings.discord.command_prefix,
            intents=intents,
            help_command=None,
            **kwargs,
        )

        self.container = container
        self.settings = settings
        self._shutdown_event = asyncio.Event()
        container.set_bot(self)

    # ── Startup ─────────────────────────────────────────────────────

    async def setup_hook(self) -> None:
        logger.info(LogTemplates.BOT_SETUP)

        try:
            await self.container.initialize()
        except Exception as e:
            logger.exception(LogTemplates.BOT_CONTAINER_INIT_FAILED, e)
            raise
        logger.info(LogTemplates.BOT_CONTAINER_INITIALIZED)

        await self._load_cogs()
        self.tree.on_error = self._on_app_command_error

        if self.settings.discord.sync_on_startup:
            try:
                await self._sync_commands()
            except Exception as e:
                logger.warning(LogTemplates.BOT_SYNC_ON_STARTUP_FAILED, e)

        logger.info(LogTemplates.BOT_SETUP_COMPLETE)

    async def _load_cogs(self) -> None:
        failed: list[str] = []
        for cog in COGS:
            try:
                await self.load_extension(cog)
            except Exception as e:
                logger.exception(LogTemplates.BOT_COG_LOAD_FAILED, cog, e)
                failed.append(cog)
            else:
                logger.info(LogTemplates.BOT_COG_LOADED, cog)

        logger.info(LogTemplates.BOT_COGS_LOADED_SUMMARY, len(COGS) - len(failed), len(failed))

    async def _sync_commands(self) -> None:
        """Sync to each test guild for instant updates, then globally."""
        for guild_id in self.settings.discord.test_guild_ids:
            await self._sync_to_guild(guild_id)

        try:
            synced = await self.tree.sync()
        except Exception as e:
            logger.warning(LogTemplates.BOT_SYNC_GLOBAL_FAILED, e)
            return
        logger.info(LogTemplates.BOT_SYNCED_GLOBAL, len(synced))

    async def _sync_to_guild(self, guild_id: int) -> None:
        guild = discord.Object(id=guild_id)
        try:
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
        except Exception as e:
            logger.warning(LogTemplates.BOT_SYNC_GUILD_FAILED, guild_id, e)
            return
        logger.info(LogTemplates.BOT_SYNCED_GUILD, len(synced), guild_id)

    async def on_ready(self) -> None:
        logger.info(LogTemplates.BOT_READY, self.user, getattr(self.user, "id", None))
        logger.info(LogTemplates.BOT_CONNECTED_GUILDS, len(self.guilds))

        activity = discord.Activity(type=discord.ActivityType.listening, name="/play")
        await self.change_presence(activity=activity)
        self._reap_leftover_voice()

    def _reap_leftover_voice(self) -> None:
        """Hand voice connections that survived a gateway reconnect to the idle reaper."""
        playback_service = self.container.playback_service
        for vc in list(self.voice_clients):
            guild = getattr(vc, "guild", None)
            if guild is None or playback_service.get_player(guild.id) is not None:
                continue
            logger.info(LogTemplates.BOT_LEFTOVER_VOICE, guild.id)
            self.container.idle_reaper.observe(guild.id)

    # ── Errors ──────────────────────────────────────────────────────

    async def _on_app_command_error(
        self, interaction: discord.Interaction, error: Exception
    ) -> None:
        """Global slash-command error handler; sends ephemeral messages to avoid channel spam."""
        original = getattr(error, "original", error)
        command_name = getattr(interaction.command, "name", "<unknown>")

        if isinstance(original, DomainError):
            logger.info(LogTemplates.BOT_SLASH_COMMAND_REJECTED, command_name, original.code)
            error_msg = DiscordUIMessages.ERROR_GENERIC.format(error=original.message)
        else:
            logger.error(LogTemplates.BOT_SLASH_COMMAND_ERROR, command_name, original)
            error_msg = DiscordUIMessages.ERROR_UNEXPECTED

        try:
            if interaction.response.is_done():
                await interaction.followup.send(error_msg, ephemeral=True)
            else:
                await interaction.response.send_message(error_msg, ephemeral=True)
        except discord.HTTPException:
            logger.warning(LogTemplates.BOT_ERROR_MESSAGE_SEND_FAILED)

    # ── Shutdown ────────────────────────────────────────────────────

    async def close(self) -> None:
        logger.info(LogTemplates.BOT_SHUTTING_DOWN)

        try:
            await self.container.shutdown()
            logger.info(LogTemplates.BOT_CONTAINER_SHUTDOWN)
        except Exception as e:
            logger.warning(LogTemplates.BOT_CONTAINER_SHUTDOWN_ERROR, e)

        # Players are gone; anything still connected has no owner.
        for vc in list(self.voice_clients):
            guild = getattr(vc, "guild", None)
            if guild is None:
                continue
            try:
                await self.container.voice_transport.disconnect_guild(guild.id)
            except Exception as e:
                logger.debug(LogTemplates.BOT_VOICE_CLOSE_FAILED, e)

        await super().close()
        self._shutdown_event.set()
        logger.info(LogTemplates.BOT_SHUTDOWN_COMPLETE)

    def run_with_graceful_shutdown(self, token: str, *, shutdown_timeout: float = 30.0) -> None:
        """Run until SIGINT/SIGTERM, giving players ``shutdown_timeout`` seconds to release voice."""

        async def runner() -> None:
            async with self:
                loop = asyncio.get_running_loop()

                async def _graceful_close() -> None:
                    try:
                        await asyncio.wait_for(self.close(), timeout=shutdown_timeout)
                    except TimeoutError:
                        logger.warning(LogTemplates.BOT_SHUTDOWN_TIMEOUT, shutdown_timeout)

                for sig in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(sig, lambda: asyncio.create_task(_graceful_close()))
                await self.start(token)

        asyncio.run(runner())


def create_bot(container: Container, settings: Settings) -> MusicBot:
    return MusicBot(container=container, settings=settings)
