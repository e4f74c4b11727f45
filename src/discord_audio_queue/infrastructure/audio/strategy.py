"""Base class for one link in the resolution fallback chain."""

from __future__ import annotations

from abc import ABC
from typing import TYPE_CHECKING

from discord_audio_queue.domain.music.entities import Track
from discord_audio_queue.domain.music.value_objects import TrackId
from discord_audio_queue.domain.shared.exceptions import (
    ResolutionError,
    ResolutionUnavailableError,
    RestrictedContentError,
    TrackNotFoundError,
)

if TYPE_CHECKING:
    from discord_audio_queue.application.interfaces.audio_resolver import StreamHandle

    from .models import YtDlpTrackInfo

_RESTRICTED_MARKERS = (
    "private video",
    "private",
    "sign in to confirm your age",
    "age-restricted",
    "age restricted",
    "not available in your country",
    "geo restricted",
    "geo-restricted",
    "region",
    "blocked it in your country",
    "members-only",
    "members only",
)
_UNAVAILABLE_MARKERS = (
    "video unavailable",
    "unavailable",
    "has been removed",
    "removed by the uploader",
    "account associated with this video has been terminated",
    "copyright",
    "no longer available",
    "premieres in",
)
_NOT_FOUND_MARKERS = (
    "no video results",
    "unable to find",
    "not found",
    "404",
    "no results",
    "unsupported url",
)


def classify_failure(message: str, source: str) -> ResolutionError:
    """Map a provider's error text onto the resolution error hierarchy."""
    lowered = message.lower()
    if any(marker in lowered for marker in _RESTRICTED_MARKERS):
        return RestrictedContentError(message, source=source)
    if any(marker in lowered for marker in _UNAVAILABLE_MARKERS):
        return ResolutionUnavailableError(message, source=source)
    if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
        return TrackNotFoundError(message, source=source)
    return ResolutionError(message, source=source)


class ResolutionStrategy(ABC):
    """One provider. Capabilities it lacks raise ``ResolutionUnavailableError``.

    The fallback chain only calls an operation on strategies whose matching
    ``provides_*`` flag is set, and wraps every call in ``timeout_seconds``.
    """

    name: str = "strategy"
    provides_metadata: bool = False
    provides_streams: bool = False
    provides_search: bool = False
    provides_playlists: bool = False

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds

    async def get_video_info(self, url: str) -> Track:
        raise self._unsupported("metadata")

    async def get_audio_source(self, track: Track) -> StreamHandle:
        raise self._unsupported("streams")

    async def search(self, query: str, limit: int) -> list[Track]:
        raise self._unsupported("search")

    async def expand_playlist(self, url: str, max_items: int) -> list[Track]:
        raise self._unsupported("playlists")

    async def close(self) -> None:
        return None

    def _unsupported(self, capability: str) -> ResolutionUnavailableError:
        return ResolutionUnavailableError(f"{self.name} does not provide {capability}", source=self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(timeout_seconds={self.timeout_seconds})"


def info_to_track(info: YtDlpTrackInfo) -> Track | None:
    """Convert a parsed yt-dlp entry into a ``Track``; None when it lacks a title or page URL."""
    url = info.page_url
    if not url or not info.title:
        return None

    return Track(
        id=TrackId.from_url(url) if info.id is None else TrackId(info.id),
        title=info.title[:500],
        webpage_url=url,
        duration_seconds=min(info.duration or 0, 86_400),
        thumbnail_url=info.best_thumbnail,
        uploader=info.best_uploader,
    )
