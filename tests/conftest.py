import asyncio

import pytest

from discord_audio_queue.application.interfaces.audio_resolver import AudioResolver, StreamHandle
from discord_audio_queue.application.interfaces.voice_transport import (
    TransportEvent,
    TransportHandle,
    VoiceTransport,
)
from discord_audio_queue.domain.music.entities import Track
from discord_audio_queue.domain.music.value_objects import TrackId
from discord_audio_queue.domain.shared.exceptions import (
    ConnectionDeniedError,
    ResolutionUnavailableError,
    TrackNotFoundError,
)

# ============================================================================
# Builders
# ============================================================================


def make_track(
    track_id: str = "track-1",
    title: str = "Test Track",
    duration_seconds: int = 180,
    **kwargs,
) -> Track:
    """Build a track with a unique page URL derived from its id."""
    return Track(
        id=TrackId(track_id),
        title=title,
        webpage_url=f"https://www.youtube.com/watch?v={track_id}",
        duration_seconds=duration_seconds,
        **kwargs,
    )


async def settle(player, rounds: int = 10) -> None:
    """Let queued transport events reach the player, then wait for playback to start."""
    for _ in range(rounds):
        await asyncio.sleep(0)
    await player.wait_until_settled()
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================================================
# Fakes
# ============================================================================


class FakeResolver(AudioResolver):
    """In-memory resolver. Queries map to tracks, titles listed in ``broken`` fail to stream."""

    def __init__(self) -> None:
        self.tracks: dict[str, Track] = {}
        self.playlists: dict[str, list[Track]] = {}
        self.search_results: list[Track] = []
        self.broken: set[str] = set()
        self.stream_calls: list[str] = []
        self.search_calls: list[tuple[str, object]] = []

    async def get_video_info(self, url_or_query: str) -> Track:
        return await self.resolve(url_or_query)

    async def get_audio_source(self, track: Track) -> StreamHandle:
        self.stream_calls.append(track.title)
        if track.title in self.broken:
            raise ResolutionUnavailableError(f"{track.title} is gone", source="fake")
        return StreamHandle(
            url=f"https://cdn.example.com/{track.id}.webm",
            uploader="Fake Uploader",
            thumbnail_url="https://img.example.com/thumb.jpg",
            source="fake",
        )

    async def search(self, query: str, options) -> list[Track]:
        self.search_calls.append((query, options))
        return list(self.search_results)

    async def expand_playlist(self, url: str, max_items: int) -> list[Track]:
        return list(self.playlists.get(url, []))[:max_items]

    async def resolve(self, query: str) -> Track:
        track = self.tracks.get(query)
        if track is None:
            raise TrackNotFoundError(f"No results for '{query}'", source="fake")
        return track

    def is_url(self, query: str) -> bool:
        return query.startswith("http")

    def is_playlist_url(self, url: str) -> bool:
        return "list=" in url


class FakeTransport(VoiceTransport):
    """Voice transport that records calls and lets tests finish tracks on demand."""

    def __init__(self) -> None:
        self.handles: dict[int, TransportHandle] = {}
        self.played: list[str] = []
        self.played_generations: list[int] = []
        self.stops = 0
        self.released: list[int] = []
        self.disconnected: list[int] = []
        self.volumes: list[int] = []
        self.denied_channels: set[int] = set()
        self.accept_play = True
        self.listeners: dict[int, int] = {}

    async def connect(self, guild_id: int, channel_id: int) -> TransportHandle:
        if channel_id in self.denied_channels:
            raise ConnectionDeniedError(channel_id, "missing permissions")
        handle = self.handles.get(guild_id)
        if handle is None or not handle.active:
            handle = TransportHandle(guild_id, channel_id)
            self.handles[guild_id] = handle
        handle.channel_id = channel_id
        return handle

    async def play(self, handle: TransportHandle, stream: StreamHandle, volume_percent: int) -> bool:
        if not self.accept_play:
            return False
        self.played.append(stream.url)
        self.played_generations.append(handle.generation)
        self.volumes.append(volume_percent)
        handle.emit(TransportEvent.PLAYING)
        return True

    async def stop_playback(self, handle: TransportHandle) -> None:
        self.stops += 1
        # A real voice client fires its after-callback when stopped.
        handle.emit(TransportEvent.IDLE, generation=self.played_generations[-1] if self.played_generations else 0)

    async def pause(self, handle: TransportHandle) -> bool:
        return True

    async def resume(self, handle: TransportHandle) -> bool:
        return True

    async def set_volume(self, handle: TransportHandle, volume_percent: int) -> bool:
        self.volumes.append(volume_percent)
        return True

    async def release(self, handle: TransportHandle) -> None:
        handle.active = False
        self.released.append(handle.guild_id)
        self.handles.pop(handle.guild_id, None)

    async def disconnect_guild(self, guild_id: int) -> bool:
        self.disconnected.append(guild_id)
        handle = self.handles.pop(guild_id, None)
        if handle is None:
            return False
        handle.active = False
        return True

    def get_channel_id(self, guild_id: int) -> int | None:
        handle = self.handles.get(guild_id)
        return handle.channel_id if handle is not None and handle.active else None

    def count_listeners(self, guild_id: int) -> int:
        return self.listeners.get(guild_id, 0)

    def finish_current(self, guild_id: int, error: str | None = None) -> None:
        """Simulate the audio thread reporting the end of the last started stream."""
        handle = self.handles[guild_id]
        event = TransportEvent.ERROR if error else TransportEvent.IDLE
        handle.emit(event, generation=self.played_generations[-1], error=error)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def sample_track():
    """Create a sample track for testing."""
    return make_track("test123", "Test Song", uploader="Test Uploader")


@pytest.fixture
def fake_resolver():
    return FakeResolver()


@pytest.fixture
def fake_transport():
    return FakeTransport()
