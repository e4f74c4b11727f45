"""
Unit Tests for MusicBot and the DI Container

Tests for:
- Global slash-command error handler
- setup_hook / close lifecycle delegation
- Container lazy construction and lifecycle
"""

from unittest.mock import AsyncMock, MagicMock, PropertyMock, patch

import discord
import pytest

from discord_audio_queue.application.services.idle_reaper import IdleReaper
from discord_audio_queue.application.services.playback_service import PlaybackService
from discord_audio_queue.application.services.search_service import SearchSessionManager
from discord_audio_queue.config.container import Container, create_container
from discord_audio_queue.config.settings import Settings
from discord_audio_queue.domain.shared.exceptions import QueueEmptyError
from discord_audio_queue.domain.shared.messages import DiscordUIMessages
from discord_audio_queue.infrastructure.audio.fallback_resolver import FallbackAudioResolver
from discord_audio_queue.infrastructure.discord.bot import COGS, MusicBot, create_bot


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def mock_container():
    container = MagicMock()
    container.initialize = AsyncMock()
    container.shutdown = AsyncMock()
    return container


def _interaction(done=False):
    interaction = MagicMock(spec=discord.Interaction)
    interaction.command = MagicMock()
    interaction.command.name = "skip"
    interaction.response = MagicMock()
    interaction.response.is_done.return_value = done
    interaction.response.send_message = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    return interaction


# =============================================================================
# MusicBot
# =============================================================================


class TestMusicBot:
    @pytest.mark.asyncio
    async def test_init_wires_container(self, mock_container, settings):
        """Should hand itself to the container."""
        bot = create_bot(mock_container, settings)

        assert isinstance(bot, MusicBot)
        mock_container.set_bot.assert_called_once_with(bot)
        assert bot.intents.voice_states

    @pytest.mark.asyncio
    async def test_domain_error_reply(self, mock_container, settings):
        """Should surface domain errors as ephemeral messages."""
        bot = create_bot(mock_container, settings)
        interaction = _interaction()

        await bot._on_app_command_error(interaction, QueueEmptyError(1))

        text = interaction.response.send_message.await_args.args[0]
        assert text == DiscordUIMessages.ERROR_GENERIC.format(error=QueueEmptyError(1).message)
        assert interaction.response.send_message.await_args.kwargs["ephemeral"] is True

    @pytest.mark.asyncio
    async def test_wrapped_domain_error(self, mock_container, settings):
        """Should unwrap the invoke error's original exception."""
        bot = create_bot(mock_container, settings)
        interaction = _interaction(done=True)
        wrapper = Exception("wrapped")
        wrapper.original = QueueEmptyError(1)

        await bot._on_app_command_error(interaction, wrapper)

        interaction.followup.send.assert_awaited_once_with(
            DiscordUIMessages.ERROR_GENERIC.format(error=QueueEmptyError(1).message), ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_unexpected_error_reply(self, mock_container, settings):
        """Should hide internal errors behind a generic message."""
        bot = create_bot(mock_container, settings)
        interaction = _interaction()

        await bot._on_app_command_error(interaction, RuntimeError("kaboom"))

        interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.ERROR_UNEXPECTED, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_setup_hook_loads_cogs(self, mock_container, settings):
        """Should initialize the container and load every cog."""
        bot = create_bot(mock_container, settings)

        with (
            patch.object(bot, "load_extension", new=AsyncMock()) as load_extension,
            patch.object(bot, "_sync_commands", new=AsyncMock()) as sync_commands,
        ):
            await bot.setup_hook()

        mock_container.initialize.assert_awaited_once()
        sync_commands.assert_awaited_once()
        assert [c.args[0] for c in load_extension.await_args_list] == list(COGS)
        assert bot.tree.on_error == bot._on_app_command_error

    @pytest.mark.asyncio
    async def test_setup_hook_container_failure(self, mock_container, settings):
        """Should abort startup when the container fails to initialize."""
        mock_container.initialize.side_effect = RuntimeError("boom")
        bot = create_bot(mock_container, settings)

        with pytest.raises(RuntimeError):
            await bot.setup_hook()

    @pytest.mark.asyncio
    async def test_close_shuts_down_container(self, mock_container, settings):
        """Should shut the container down before closing the client."""
        bot = create_bot(mock_container, settings)

        with patch("discord.ext.commands.Bot.close", new=AsyncMock()):
            await bot.close()

        mock_container.shutdown.assert_awaited_once()
        assert bot._shutdown_event.is_set()

    @pytest.mark.asyncio
    async def test_close_releases_orphan_voice(self, mock_container, settings):
        """Should disconnect voice clients that outlived the players."""
        mock_container.voice_transport.disconnect_guild = AsyncMock(return_value=True)
        bot = create_bot(mock_container, settings)
        vc = MagicMock()
        vc.guild.id = 42

        with (
            patch.object(MusicBot, "voice_clients", new_callable=PropertyMock, return_value=[vc]),
            patch("discord.ext.commands.Bot.close", new=AsyncMock()),
        ):
            await bot.close()

        mock_container.voice_transport.disconnect_guild.assert_awaited_once_with(42)

    @pytest.mark.asyncio
    async def test_on_ready_hands_leftover_voice_to_reaper(self, mock_container, settings):
        """Should let the idle reaper judge connections without a player."""
        mock_container.playback_service.get_player.side_effect = lambda guild_id: (
            MagicMock() if guild_id == 1 else None
        )
        bot = create_bot(mock_container, settings)
        with_player, leftover = MagicMock(), MagicMock()
        with_player.guild.id = 1
        leftover.guild.id = 2

        with (
            patch.object(
                MusicBot, "voice_clients", new_callable=PropertyMock, return_value=[with_player, leftover]
            ),
            patch.object(MusicBot, "user", new_callable=PropertyMock, return_value=None),
            patch.object(bot, "change_presence", new=AsyncMock()) as change_presence,
        ):
            await bot.on_ready()

        change_presence.assert_awaited_once()
        mock_container.idle_reaper.observe.assert_called_once_with(2)


# =============================================================================
# Container
# =============================================================================


class TestContainer:
    def test_bot_required(self, settings):
        """Should refuse to build the voice transport before set_bot()."""
        container = create_container(settings)

        with pytest.raises(RuntimeError):
            _ = container.voice_transport

    def test_audio_resolver_is_cached(self, settings):
        """Should build the fallback resolver once."""
        container = Container(settings)

        resolver = container.audio_resolver

        assert isinstance(resolver, FallbackAudioResolver)
        assert container.audio_resolver is resolver

    def test_services_share_dependencies(self, settings):
        """Should wire every service to the same resolver and transport."""
        container = Container(settings)
        container.set_bot(MagicMock())

        assert isinstance(container.playback_service, PlaybackService)
        assert isinstance(container.search_service, SearchSessionManager)
        assert isinstance(container.idle_reaper, IdleReaper)
        assert container.playback_service is container.playback_service
        assert container.search_service._resolver is container.audio_resolver

    @pytest.mark.asyncio
    async def test_initialize_and_shutdown(self, settings):
        """Should start the search sweeper and stop it on shutdown."""
        container = Container(settings)
        container.set_bot(MagicMock())

        await container.initialize()
        assert container.search_service.is_running

        await container.shutdown()
        assert not container.search_service.is_running

    @pytest.mark.asyncio
    async def test_shutdown_without_components(self, settings):
        """Should be a no-op when nothing was built."""
        container = Container(settings)

        await container.shutdown()

        assert container._playback_service is None
