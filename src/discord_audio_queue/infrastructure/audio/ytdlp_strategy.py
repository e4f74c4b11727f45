"""Metadata, stream, search and playlist resolution with yt-dlp."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, cast

from pydantic import ValidationError
from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError, ExtractorError

from discord_audio_queue.application.interfaces.audio_resolver import StreamHandle
from discord_audio_queue.domain.music.entities import Track
from discord_audio_queue.domain.shared.exceptions import (
    ResolutionUnavailableError,
    RestrictedContentError,
    TrackNotFoundError,
)
from discord_audio_queue.domain.shared.messages import LogTemplates

from .models import LOG_URL_TRUNCATE, YtDlpOpts, YtDlpPlaylistInfo, YtDlpTrackInfo
from .strategy import ResolutionStrategy, classify_failure, info_to_track

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "bestaudio/best"


class YtDlpStrategy(ResolutionStrategy):
    """Local extraction. Blocking yt-dlp calls run in a worker thread."""

    name = "yt-dlp"
    provides_metadata = True
    provides_streams = True
    provides_search = True
    provides_playlists = True

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        *,
        ytdlp_format: str | None = None,
        search_prefix: str = "ytsearch",
    ) -> None:
        super().__init__(timeout_seconds)
        self._format = ytdlp_format or DEFAULT_FORMAT
        self._search_prefix = search_prefix
        self._base_opts = YtDlpOpts(format=self._format)

    def _get_opts(self, **overrides: Any) -> YtDlpOpts:
        if overrides:
            return self._base_opts.model_copy(update=overrides)
        return self._base_opts

    def _get_flat_opts(self, **overrides: Any) -> YtDlpOpts:
        return self._get_opts(extract_flat="in_playlist", format=None, **overrides)

    # ── Blocking helpers (worker thread) ────────────────────────────

    def _extract_sync(self, target: str, opts: YtDlpOpts) -> dict[str, Any] | None:
        params = cast(Any, opts.model_dump(exclude_none=True))
        try:
            with YoutubeDL(params=params) as ydl:
                data = ydl.extract_info(target, download=False)
        except (DownloadError, ExtractorError) as exc:
            raise classify_failure(str(exc), self.name) from exc
        return dict(data) if isinstance(data, dict) else None

    def _entries_sync(self, target: str, opts: YtDlpOpts) -> list[YtDlpTrackInfo]:
        data = self._extract_sync(target, opts)
        if data is None:
            raise TrackNotFoundError(f"No results for '{target}'", source=self.name)

        playlist = YtDlpPlaylistInfo.model_validate(data)
        infos: list[YtDlpTrackInfo] = []
        for entry in playlist.entries:
            try:
                infos.append(YtDlpTrackInfo.model_validate(entry))
            except ValidationError:
                logger.debug(LogTemplates.YTDLP_ENTRY_UNPARSEABLE, target[:LOG_URL_TRUNCATE])
        return infos

    # ── Strategy operations ─────────────────────────────────────────

    async def get_video_info(self, url: str) -> Track:
        data = await asyncio.to_thread(self._extract_sync, url, self._get_opts())
        if data is None:
            raise TrackNotFoundError(f"Nothing extracted from {url[:LOG_URL_TRUNCATE]}", source=self.name)
        if data.get("_type") == "playlist":
            entries = YtDlpPlaylistInfo.model_validate(data).entries
            if not entries:
                raise TrackNotFoundError(f"No results for '{url}'", source=self.name)
            data = entries[0]

        info = YtDlpTrackInfo.model_validate(data)
        self._raise_for_availability(info)
        track = info_to_track(info)
        if track is None:
            logger.warning(LogTemplates.YTDLP_NO_URL_IN_INFO_DICT)
            raise ResolutionUnavailableError("Extractor returned no usable metadata", source=self.name)
        return track

    async def get_audio_source(self, track: Track) -> StreamHandle:
        return await self._stream_for_url(track.webpage_url)

    async def _stream_for_url(self, url: str) -> StreamHandle:
        data = await asyncio.to_thread(self._extract_sync, url, self._get_opts())
        if data is None:
            raise TrackNotFoundError(f"Nothing extracted from {url[:LOG_URL_TRUNCATE]}", source=self.name)

        info = YtDlpTrackInfo.model_validate(data)
        self._raise_for_availability(info)
        stream_url = info.stream_url()
        if not stream_url or not stream_url.startswith(("http://", "https://")):
            logger.warning(LogTemplates.YTDLP_NO_STREAM_URL, info.title or url)
            raise ResolutionUnavailableError("No playable audio format", source=self.name)

        return StreamHandle(
            url=stream_url,
            title=info.title,
            uploader=info.best_uploader,
            thumbnail_url=info.best_thumbnail,
            duration_seconds=info.duration,
            http_headers=info.http_headers,
            source=self.name,
        )

    async def search(self, query: str, limit: int) -> list[Track]:
        target = f"{self._search_prefix}{limit}:{query}"
        infos = await asyncio.to_thread(self._entries_sync, target, self._get_flat_opts())
        tracks = [t for t in (info_to_track(i) for i in infos) if t is not None]
        if not tracks:
            raise TrackNotFoundError(f"No results for '{query}'", source=self.name)
        logger.debug(LogTemplates.YTDLP_SEARCH_RESULTS, self.name, len(tracks), query)
        return tracks

    async def expand_playlist(self, url: str, max_items: int) -> list[Track]:
        opts = self._get_flat_opts(noplaylist=False, playlistend=max_items, ignoreerrors=True)
        infos = await asyncio.to_thread(self._entries_sync, url, opts)

        tracks: list[Track] = []
        for info in infos[:max_items]:
            track = info_to_track(info)
            if track is None:
                logger.debug(LogTemplates.PLAYLIST_ENTRY_SKIPPED, url[:LOG_URL_TRUNCATE])
                continue
            tracks.append(track)
        return tracks

    def _raise_for_availability(self, info: YtDlpTrackInfo) -> None:
        availability = (info.availability or "").lower()
        if availability in ("private", "premium_only", "subscriber_only", "needs_auth"):
            raise RestrictedContentError(f"Media is {availability}", source=self.name)
        if info.live_status == "is_upcoming":
            raise ResolutionUnavailableError("Media has not premiered yet", source=self.name)

