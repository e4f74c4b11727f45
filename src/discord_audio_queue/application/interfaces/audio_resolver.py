"""Port interface for resolving audio tracks from queries and URLs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from discord_audio_queue.domain.shared.types import (
    HttpUrlStr,
    NonEmptyStr,
    NonNegativeInt,
    PositiveInt,
)

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ...domain.music.value_objects import SearchOptions


class StreamHandle(BaseModel):
    """A directly playable audio URL plus whatever metadata came with it."""

    model_config = ConfigDict(frozen=True)

    url: HttpUrlStr
    title: str | None = None
    uploader: str | None = None
    thumbnail_url: str | None = None
    duration_seconds: NonNegativeInt | None = None
    http_headers: dict[str, str] = Field(default_factory=dict)
    source: NonEmptyStr


class AudioResolver(ABC):
    """Interface for resolving URLs and search queries to playable tracks.

    Every method raises a ``ResolutionError`` subclass on failure.
    """

    @abstractmethod
    async def get_video_info(self, url_or_query: NonEmptyStr) -> Track:
        """Fetch full metadata for a URL (or the best search match for text)."""
        ...

    @abstractmethod
    async def get_audio_source(self, track: Track) -> StreamHandle:
        """Resolve a stream URL the transport can play for ``track``."""
        ...

    @abstractmethod
    async def search(self, query: NonEmptyStr, options: SearchOptions) -> list[Track]:
        """Search for tracks matching a query."""
        ...

    @abstractmethod
    async def expand_playlist(self, url: HttpUrlStr, max_items: PositiveInt) -> list[Track]:
        """List playable members of a playlist, in order, capped at ``max_items``."""
        ...

    @abstractmethod
    async def resolve(self, query: NonEmptyStr) -> Track:
        """URL goes to ``get_video_info``; free text becomes a one-result long-form search."""
        ...

    @abstractmethod
    def is_url(self, query: str) -> bool:
        ...

    @abstractmethod
    def is_playlist_url(self, url: str) -> bool:
        ...

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None
