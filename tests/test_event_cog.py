"""
Unit Tests for EventCog

Tests for:
- Bot voice disconnect tearing down guild state
- Listener channel changes feeding the idle reaper
- Guild removal cleanup
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from discord_audio_queue.infrastructure.discord.cogs.event_cog import EventCog

GUILD_ID = 111111111
BOT_ID = 999999999


@pytest.fixture
def container():
    container = MagicMock()
    container.playback_service.destroy = AsyncMock(return_value=True)
    return container


@pytest.fixture
def cog(container):
    bot = MagicMock()
    bot.user.id = BOT_ID
    return EventCog(bot, container)


def _member(member_id, *, is_bot=False):
    member = MagicMock()
    member.id = member_id
    member.bot = is_bot
    member.guild.id = GUILD_ID
    return member


def _state(channel_id=None):
    state = MagicMock()
    if channel_id is None:
        state.channel = None
    else:
        state.channel = MagicMock()
        state.channel.id = channel_id
    return state


class TestVoiceStateUpdate:
    @pytest.mark.asyncio
    async def test_bot_disconnected_tears_down(self, cog, container):
        """Should destroy the player and forget the transport handle."""
        await cog.on_voice_state_update(_member(BOT_ID, is_bot=True), _state(10), _state(None))

        container.idle_reaper.cancel.assert_called_once_with(GUILD_ID)
        container.playback_service.destroy.assert_awaited_once_with(GUILD_ID)
        container.voice_transport.forget.assert_called_once_with(GUILD_ID)

    @pytest.mark.asyncio
    async def test_bot_moved_reevaluates(self, cog, container):
        """Should re-check occupancy when the bot changes channel."""
        await cog.on_voice_state_update(_member(BOT_ID, is_bot=True), _state(10), _state(20))

        container.idle_reaper.observe.assert_called_once_with(GUILD_ID)
        container.playback_service.destroy.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_listener_leaves(self, cog, container):
        """Should observe occupancy when a listener leaves a channel."""
        await cog.on_voice_state_update(_member(1234), _state(10), _state(None))

        container.idle_reaper.observe.assert_called_once_with(GUILD_ID)

    @pytest.mark.asyncio
    async def test_listener_mute_ignored(self, cog, container):
        """Should ignore updates that keep the same channel."""
        await cog.on_voice_state_update(_member(1234), _state(10), _state(10))

        container.idle_reaper.observe.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_bots_ignored(self, cog, container):
        """Should not count other bots joining or leaving."""
        await cog.on_voice_state_update(_member(4321, is_bot=True), _state(None), _state(10))

        container.idle_reaper.observe.assert_not_called()


class TestGuildEvents:
    @pytest.mark.asyncio
    async def test_guild_remove(self, cog, container):
        """Should clean up after leaving a guild."""
        guild = MagicMock()
        guild.id = GUILD_ID
        guild.name = "Test Guild"

        await cog.on_guild_remove(guild)

        container.playback_service.destroy.assert_awaited_once_with(GUILD_ID)
        container.voice_transport.forget.assert_called_once_with(GUILD_ID)

    @pytest.mark.asyncio
    async def test_resumed_logged_once(self, cog):
        """Should only log the first resume."""
        await cog.on_resumed()
        await cog.on_resumed()

        assert cog._resumed_logged_once
