"""Port interface for the shared voice transport."""

from __future__ import annotations

import asyncio
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .audio_resolver import StreamHandle


class TransportEvent(Enum):
    PLAYING = "playing"
    IDLE = "idle"
    PAUSED = "paused"
    ERROR = "error"


@dataclass(frozen=True)
class TransportSignal:
    """A transport event stamped with the playback generation it belongs to."""

    event: TransportEvent
    generation: int
    error: str | None = None


class TransportHandle:
    """A guild's claim on the voice transport.

    The transport pushes ``TransportSignal`` values into ``events`` from any
    thread. Every new playback bumps ``generation`` so signals from audio that
    was already replaced or stopped can be told apart.
    """

    def __init__(
        self,
        guild_id: int,
        channel_id: int,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.guild_id = guild_id
        self.channel_id = channel_id
        self.events: asyncio.Queue[TransportSignal] = asyncio.Queue()
        self.active = True
        self.generation = 0
        self._loop = loop or asyncio.get_running_loop()
        self._generation_lock = threading.Lock()

    def next_generation(self) -> int:
        with self._generation_lock:
            self.generation += 1
            return self.generation

    def emit(self, event: TransportEvent, generation: int | None = None, error: str | None = None) -> None:
        """Queue an event; safe to call from the audio thread."""
        signal = TransportSignal(
            event=event,
            generation=self.generation if generation is None else generation,
            error=error,
        )
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.events.put_nowait, signal)

    def __repr__(self) -> str:
        return (
            f"TransportHandle(guild_id={self.guild_id}, channel_id={self.channel_id}, "
            f"active={self.active}, generation={self.generation})"
        )


class VoiceTransport(ABC):
    """Interface for Discord voice channel operations."""

    @abstractmethod
    async def connect(self, guild_id: int, channel_id: int) -> TransportHandle:
        """Join ``channel_id``, or move there if already connected elsewhere in the guild.

        Raises ``ConnectionDeniedError`` when the platform refuses.
        """
        ...

    @abstractmethod
    async def play(self, handle: TransportHandle, stream: StreamHandle, volume_percent: int) -> bool:
        """Start playing ``stream``. Returns False when the transport refuses it."""
        ...

    @abstractmethod
    async def stop_playback(self, handle: TransportHandle) -> None:
        """Stop whatever is playing without leaving the channel."""
        ...

    @abstractmethod
    async def pause(self, handle: TransportHandle) -> bool:
        ...

    @abstractmethod
    async def resume(self, handle: TransportHandle) -> bool:
        ...

    @abstractmethod
    async def set_volume(self, handle: TransportHandle, volume_percent: int) -> bool:
        """Apply a volume change to the live stream, if the transport supports it."""
        ...

    @abstractmethod
    async def release(self, handle: TransportHandle) -> None:
        """Disconnect and mark the handle inactive."""
        ...

    @abstractmethod
    async def disconnect_guild(self, guild_id: int) -> bool:
        """Leave voice in ``guild_id`` even when no handle is known. Returns False if not connected."""
        ...

    @abstractmethod
    def get_channel_id(self, guild_id: int) -> int | None:
        """Channel the bot currently sits in, or None when not connected."""
        ...

    @abstractmethod
    def count_listeners(self, guild_id: int) -> int:
        """Non-bot members in the bot's channel. 0 when not connected."""
        ...
