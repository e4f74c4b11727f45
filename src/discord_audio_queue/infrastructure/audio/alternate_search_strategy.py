"""Last-resort provider: find the same song by title on another platform."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord_audio_queue.domain.music.services import ShortFormFilter
from discord_audio_queue.domain.shared.exceptions import TrackNotFoundError
from discord_audio_queue.domain.shared.messages import LogTemplates

from .ytdlp_strategy import YtDlpStrategy

if TYPE_CHECKING:
    from discord_audio_queue.application.interfaces.audio_resolver import StreamHandle
    from discord_audio_queue.domain.music.entities import Track

logger = logging.getLogger(__name__)

ALTERNATE_CANDIDATES = 5


class AlternateSearchStrategy(YtDlpStrategy):
    """Search-only. Streams are found by searching the track title, never by URL."""

    name = "alternate-search"
    provides_metadata = False
    provides_streams = True
    provides_search = True
    provides_playlists = False

    def __init__(
        self,
        timeout_seconds: float = 20.0,
        *,
        search_prefix: str = "scsearch",
        ytdlp_format: str | None = None,
    ) -> None:
        super().__init__(timeout_seconds, ytdlp_format=ytdlp_format, search_prefix=search_prefix)

    async def get_video_info(self, url: str) -> Track:
        raise self._unsupported("metadata")

    async def expand_playlist(self, url: str, max_items: int) -> list[Track]:
        raise self._unsupported("playlists")

    async def get_audio_source(self, track: Track) -> StreamHandle:
        candidates = await self.search(track.title, ALTERNATE_CANDIDATES)
        kept = ShortFormFilter.filter_and_rank(candidates, exclude_short_form=True)
        if not kept:
            raise TrackNotFoundError(f"No alternate source for '{track.title}'", source=self.name)

        match = kept[0]
        logger.info(LogTemplates.ALTERNATE_MATCH, track.title, match.title, match.webpage_url)
        stream = await self._stream_for_url(match.webpage_url)
        return stream.model_copy(update={"source": self.name})
