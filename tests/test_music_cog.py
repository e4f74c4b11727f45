"""
Unit Tests for MusicCog

Tests for the slash commands:
- /play (resolution errors, same-channel rule, reply formatting)
- /pause, /resume, /skip, /stop
- /queue, /clear, /remove, /shuffle, /loop, /volume, /nowplaying

Uses pytest with async/await patterns and proper mocking.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from conftest import make_track

from discord_audio_queue.application.services.queue_models import EnqueueResult, QueueSnapshot
from discord_audio_queue.domain.music.value_objects import PlaybackState
from discord_audio_queue.domain.shared.exceptions import (
    NotInSameChannelError,
    TrackNotFoundError,
)
from discord_audio_queue.domain.shared.messages import DiscordUIMessages, ErrorMessages
from discord_audio_queue.infrastructure.discord.cogs.music_cog import (
    MusicCog,
    build_now_playing_embed,
    format_enqueue_reply,
)
from discord_audio_queue.infrastructure.discord.views.now_playing_view import (
    NowPlayingView,
)

GUILD_ID = 111111111
USER_ID = 333333333
USER_CHANNEL_ID = 444444444

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_bot():
    """Create a mock Discord bot."""
    return MagicMock()


@pytest.fixture
def mock_player():
    player = MagicMock()
    player.is_destroyed = False
    player.queue.is_empty = False
    player.queue.loop_current = False
    player.queue.volume_percent = 50
    player.pause = AsyncMock(return_value=True)
    player.resume = AsyncMock(return_value=True)
    player.skip = AsyncMock()
    player.clear = AsyncMock(return_value=2)
    player.remove_song = AsyncMock()
    player.shuffle = AsyncMock(return_value=True)
    player.toggle_loop = AsyncMock(return_value=True)
    player.set_volume = AsyncMock(return_value=70)
    return player


@pytest.fixture
def mock_container(mock_player):
    """Create a mock DI container."""
    container = MagicMock()

    container.playback_service = MagicMock()
    container.playback_service.play = AsyncMock()
    container.playback_service.destroy = AsyncMock(return_value=True)
    container.playback_service.get_player = MagicMock(return_value=mock_player)

    container.voice_transport = MagicMock()
    container.voice_transport.get_channel_id = MagicMock(return_value=USER_CHANNEL_ID)
    container.voice_transport.disconnect_guild = AsyncMock(return_value=False)

    container.idle_reaper = MagicMock()
    return container


@pytest.fixture
def cog(mock_bot, mock_container):
    return MusicCog(mock_bot, mock_container)


@pytest.fixture
def mock_interaction():
    """Create a mock Discord Interaction."""
    interaction = MagicMock(spec=discord.Interaction)
    interaction.response = MagicMock()
    interaction.response.is_done.return_value = False
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()
    interaction.original_response = AsyncMock()

    interaction.guild = MagicMock()
    interaction.guild.id = GUILD_ID

    member = MagicMock(spec=discord.Member)
    member.id = USER_ID
    member.display_name = "TestUser"
    member.voice = MagicMock()
    member.voice.channel = MagicMock()
    member.voice.channel.id = USER_CHANNEL_ID
    interaction.user = member
    return interaction


def _sent_text(interaction):
    return interaction.response.send_message.await_args.args[0]


# =============================================================================
# Formatting helpers
# =============================================================================


class TestFormatting:
    def test_enqueue_reply_queued(self):
        """Should mention the queue position."""
        result = EnqueueResult(tracks=[make_track(title="Song")], position=3, queue_length=3)

        assert format_enqueue_reply(result) == DiscordUIMessages.ACTION_QUEUED.format(title="Song", position=3)

    def test_enqueue_reply_now_playing(self):
        """Should announce immediate playback."""
        result = EnqueueResult(tracks=[make_track(title="Song")], position=1, started_playback=True)

        assert format_enqueue_reply(result) == DiscordUIMessages.ACTION_NOW_PLAYING.format(title="Song")

    def test_enqueue_reply_playlist(self):
        """Should count playlist tracks and skipped members."""
        result = EnqueueResult(
            tracks=[make_track("a", "A"), make_track("b", "B")], position=1, skipped=1
        )

        reply = format_enqueue_reply(result)

        assert reply.startswith(DiscordUIMessages.ACTION_PLAYLIST_QUEUED.format(count=2))
        assert "1 skipped" in reply

    def test_now_playing_embed(self):
        """Should include duration, uploader, volume and loop fields."""
        track = make_track(title="Song", uploader="Artist").with_requester(USER_ID, "TestUser")

        embed = build_now_playing_embed(track, loop_current=True, volume_percent=80)

        values = [field.value for field in embed.fields]
        assert "3:00" in values
        assert "Artist" in values
        assert "80%" in values
        assert f"<@{USER_ID}>" in embed.description


# =============================================================================
# /play
# =============================================================================


class TestPlayCommand:
    @pytest.mark.asyncio
    async def test_play_starts_with_embed(self, cog, mock_container, mock_interaction):
        """Should defer, call the service and reply with a now-playing embed."""
        track = make_track(title="Song")
        mock_container.playback_service.play.return_value = EnqueueResult(
            tracks=[track], position=1, queue_length=1, started_playback=True
        )

        await cog.play.callback(cog, mock_interaction, "song")

        mock_interaction.response.defer.assert_awaited_once()
        kwargs = mock_container.playback_service.play.await_args.kwargs
        assert kwargs["guild_id"] == GUILD_ID
        assert kwargs["channel_id"] == USER_CHANNEL_ID
        assert kwargs["requester_name"] == "TestUser"
        sent = mock_interaction.followup.send.await_args.kwargs
        assert isinstance(sent["embed"], discord.Embed)
        assert isinstance(sent["view"], NowPlayingView)
        assert sent["wait"] is True

    @pytest.mark.asyncio
    async def test_play_queued_reply(self, cog, mock_container, mock_interaction):
        """Should reply with the queue position when not first."""
        mock_container.playback_service.play.return_value = EnqueueResult(
            tracks=[make_track(title="Song")], position=2, queue_length=2
        )

        await cog.play.callback(cog, mock_interaction, "song")

        mock_interaction.followup.send.assert_awaited_once_with(
            DiscordUIMessages.ACTION_QUEUED.format(title="Song", position=2)
        )

    @pytest.mark.asyncio
    async def test_play_resolution_error(self, cog, mock_container, mock_interaction):
        """Should report resolution failures ephemerally."""
        mock_container.playback_service.play.side_effect = TrackNotFoundError("No results", source="yt-dlp")

        await cog.play.callback(cog, mock_interaction, "nothing")

        mock_interaction.followup.send.assert_awaited_once_with(
            DiscordUIMessages.ERROR_GENERIC.format(error="No results"), ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_play_requires_voice(self, cog, mock_container, mock_interaction):
        """Should refuse callers outside voice."""
        mock_interaction.user.voice = None

        await cog.play.callback(cog, mock_interaction, "song")

        mock_container.playback_service.play.assert_not_awaited()
        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_play_other_channel_with_active_queue(self, cog, mock_container, mock_interaction):
        """Should reject /play from another channel while the queue is busy."""
        mock_container.voice_transport.get_channel_id.return_value = 999

        with pytest.raises(NotInSameChannelError):
            await cog.play.callback(cog, mock_interaction, "song")
        mock_container.playback_service.play.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_play_other_channel_with_empty_queue(
        self, cog, mock_container, mock_player, mock_interaction
    ):
        """Should let anyone in voice start a fresh queue."""
        mock_player.queue.is_empty = True
        mock_container.voice_transport.get_channel_id.return_value = 999
        mock_container.playback_service.play.return_value = EnqueueResult(
            tracks=[make_track(title="Song")], position=1, started_playback=True
        )

        await cog.play.callback(cog, mock_interaction, "song")

        mock_container.playback_service.play.assert_awaited_once()


# =============================================================================
# Transport control
# =============================================================================


class TestControlCommands:
    @pytest.mark.asyncio
    async def test_pause(self, cog, mock_interaction):
        """Should confirm the pause."""
        await cog.pause.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_PAUSED

    @pytest.mark.asyncio
    async def test_pause_when_not_playing(self, cog, mock_player, mock_interaction):
        """Should explain that nothing is playing."""
        mock_player.pause.return_value = False

        await cog.pause.callback(cog, mock_interaction)

        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_NOT_PLAYING, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_resume_when_not_paused(self, cog, mock_player, mock_interaction):
        """Should explain that playback is not paused."""
        mock_player.resume.return_value = False

        await cog.resume.callback(cog, mock_interaction)

        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_NOT_PAUSED, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_skip(self, cog, mock_player, mock_interaction):
        """Should name the skipped track."""
        mock_player.skip.return_value = make_track(title="Old Song")

        await cog.skip.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_SKIPPED.format(title="Old Song")

    @pytest.mark.asyncio
    async def test_control_without_player(self, cog, mock_container, mock_interaction):
        """Should report that nothing is playing when no player exists."""
        mock_container.playback_service.get_player.return_value = None

        await cog.skip.callback(cog, mock_interaction)

        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_NOTHING_PLAYING, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_control_from_other_channel(self, cog, mock_container, mock_player, mock_interaction):
        """Should raise for callers outside the bot's channel."""
        mock_container.voice_transport.get_channel_id.return_value = 999

        with pytest.raises(NotInSameChannelError):
            await cog.pause.callback(cog, mock_interaction)
        mock_player.pause.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stop(self, cog, mock_container, mock_interaction):
        """Should destroy the player, cancel the idle timer and confirm."""
        await cog.stop.callback(cog, mock_interaction)

        mock_container.playback_service.destroy.assert_awaited_once_with(GUILD_ID)
        mock_container.idle_reaper.cancel.assert_called_once_with(GUILD_ID)
        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_STOPPED

    @pytest.mark.asyncio
    async def test_stop_without_player_disconnects_orphan(self, cog, mock_container, mock_interaction):
        """Should still leave voice when only a bare connection exists."""
        mock_container.playback_service.destroy.return_value = False
        mock_container.voice_transport.disconnect_guild.return_value = True

        await cog.stop.callback(cog, mock_interaction)

        mock_container.voice_transport.disconnect_guild.assert_awaited_once_with(GUILD_ID)
        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_STOPPED

    @pytest.mark.asyncio
    async def test_stop_when_not_connected(self, cog, mock_container, mock_interaction):
        """Should explain that the bot is not in voice."""
        mock_container.playback_service.destroy.return_value = False

        await cog.stop.callback(cog, mock_interaction)

        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_NOT_CONNECTED_TO_VOICE, ephemeral=True
        )


# =============================================================================
# Queue management
# =============================================================================


def _snapshot(count_upcoming=3, loop_current=False):
    return QueueSnapshot(
        guild_id=GUILD_ID,
        current_track=make_track("cur", "Current"),
        upcoming_tracks=[make_track(f"u{i}", f"Upcoming {i}") for i in range(count_upcoming)],
        total_duration_seconds=180 * (count_upcoming + 1),
        loop_current=loop_current,
        volume_percent=50,
        state=PlaybackState.PLAYING,
    )


class TestQueueCommands:
    @pytest.mark.asyncio
    async def test_queue_embed(self, cog, mock_player, mock_interaction):
        """Should list the current track and numbered upcoming tracks."""
        mock_player.snapshot.return_value = _snapshot(3, loop_current=True)

        await cog.queue.callback(cog, mock_interaction)

        embed = mock_interaction.response.send_message.await_args.kwargs["embed"]
        names = [field.name for field in embed.fields]
        assert names[1:] == ["2. Upcoming 0", "3. Upcoming 1", "4. Upcoming 2"]
        assert "Current" in embed.fields[0].value
        assert "12:00" in embed.footer.text
        assert "Loop" in embed.footer.text

    @pytest.mark.asyncio
    async def test_queue_second_page(self, cog, mock_player, mock_interaction):
        """Should number tracks by absolute position on later pages."""
        mock_player.snapshot.return_value = _snapshot(12)

        await cog.queue.callback(cog, mock_interaction, 2)

        embed = mock_interaction.response.send_message.await_args.kwargs["embed"]
        assert [field.name for field in embed.fields[1:]] == ["12. Upcoming 10", "13. Upcoming 11"]

    @pytest.mark.asyncio
    async def test_queue_empty(self, cog, mock_container, mock_interaction):
        """Should report an empty queue."""
        mock_container.playback_service.get_player.return_value = None

        await cog.queue.callback(cog, mock_interaction)

        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_QUEUE_EMPTY, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_clear(self, cog, mock_interaction):
        """Should report how many tracks were removed."""
        await cog.clear.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_QUEUE_CLEARED.format(count=2)

    @pytest.mark.asyncio
    async def test_clear_nothing(self, cog, mock_player, mock_interaction):
        """Should say when there was nothing to clear."""
        mock_player.clear.return_value = 0

        await cog.clear.callback(cog, mock_interaction)

        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_QUEUE_ALREADY_EMPTY, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_remove(self, cog, mock_player, mock_interaction):
        """Should remove by position and name the track."""
        mock_player.remove_song.return_value = make_track(title="Gone")

        await cog.remove.callback(cog, mock_interaction, 3)

        mock_player.remove_song.assert_awaited_once_with(3)
        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_TRACK_REMOVED.format(title="Gone")

    @pytest.mark.asyncio
    async def test_remove_non_positive(self, cog, mock_player, mock_interaction):
        """Should reject positions below 1 before touching the queue."""
        await cog.remove.callback(cog, mock_interaction, 0)

        mock_player.remove_song.assert_not_awaited()
        mock_interaction.response.send_message.assert_awaited_once_with(
            ErrorMessages.POSITION_MUST_BE_POSITIVE, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_shuffle_too_few(self, cog, mock_player, mock_interaction):
        """Should explain when there is nothing to shuffle."""
        mock_player.shuffle.return_value = False

        await cog.shuffle.callback(cog, mock_interaction)

        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_NOT_ENOUGH_TRACKS_TO_SHUFFLE, ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_loop_toggle(self, cog, mock_player, mock_interaction):
        """Should report the new loop state."""
        await cog.loop.callback(cog, mock_interaction)
        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_LOOP_ON

        mock_player.toggle_loop.return_value = False
        await cog.loop.callback(cog, mock_interaction)
        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_LOOP_OFF

    @pytest.mark.asyncio
    async def test_volume(self, cog, mock_player, mock_interaction):
        """Should apply and confirm the volume."""
        await cog.volume.callback(cog, mock_interaction, 70)

        mock_player.set_volume.assert_awaited_once_with(70)
        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_VOLUME_SET.format(volume=70)

    @pytest.mark.asyncio
    async def test_nowplaying(self, cog, mock_player, mock_interaction):
        """Should post the current track with the control panel attached."""
        mock_player.now_playing.return_value = make_track(title="Current")

        await cog.nowplaying.callback(cog, mock_interaction)

        kwargs = mock_interaction.response.send_message.await_args.kwargs
        assert "Current" in kwargs["embed"].description
        assert isinstance(kwargs["view"], NowPlayingView)
        assert kwargs["view"]._message is mock_interaction.original_response.return_value

    @pytest.mark.asyncio
    async def test_nowplaying_nothing(self, cog, mock_player, mock_interaction):
        """Should report when nothing is playing."""
        mock_player.now_playing.return_value = None

        await cog.nowplaying.callback(cog, mock_interaction)

        mock_interaction.response.send_message.assert_awaited_once_with(
            DiscordUIMessages.STATE_NOTHING_PLAYING, ephemeral=True
        )
