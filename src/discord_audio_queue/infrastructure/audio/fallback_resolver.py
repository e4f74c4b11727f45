"""AudioResolver that walks an ordered chain of resolution strategies."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, TypeVar

from discord_audio_queue.application.interfaces.audio_resolver import AudioResolver, StreamHandle
from discord_audio_queue.domain.music.services import QueryClassifier, ShortFormFilter
from discord_audio_queue.domain.music.value_objects import SearchOptions
from discord_audio_queue.domain.shared.exceptions import (
    InvalidQueryError,
    ResolutionError,
    ResolutionTimeoutError,
    ResolutionUnavailableError,
    TrackNotFoundError,
)
from discord_audio_queue.domain.shared.messages import LogTemplates

from .models import MAX_SEARCH_FETCH, SEARCH_OVERFETCH_FACTOR

if TYPE_CHECKING:
    from discord_audio_queue.config.settings import AudioSettings, ResolverSettings
    from discord_audio_queue.domain.music.entities import Track

    from .strategy import ResolutionStrategy

logger = logging.getLogger(__name__)

T = TypeVar("T")

RESOLVE_MIN_DURATION_SECONDS = 61


class FallbackAudioResolver(AudioResolver):
    """Tries strategies in priority order; the first success wins.

    When every strategy fails, the most specific error seen is raised
    (restricted > unavailable > not found > timeout > unknown). A strategy is
    tried once per call; there are no retries within a strategy.
    """

    def __init__(self, strategies: Sequence[ResolutionStrategy]) -> None:
        if not strategies:
            raise ValueError("At least one resolution strategy is required")
        self._strategies = list(strategies)

    @property
    def strategies(self) -> list[ResolutionStrategy]:
        return list(self._strategies)

    # ── Chain ───────────────────────────────────────────────────────

    async def _run_chain(
        self,
        capability: str,
        subject: str,
        call: Callable[[ResolutionStrategy], Awaitable[T]],
    ) -> T:
        best: ResolutionError | None = None
        for strategy in self._strategies:
            if not getattr(strategy, f"provides_{capability}"):
                continue

            try:
                async with asyncio.timeout(strategy.timeout_seconds):
                    result = await call(strategy)
            except TimeoutError:
                error: ResolutionError = ResolutionTimeoutError(
                    f"{strategy.name} timed out after {strategy.timeout_seconds}s", source=strategy.name
                )
            except ResolutionError as exc:
                error = exc
            except Exception as exc:
                logger.exception(LogTemplates.STRATEGY_CRASHED, strategy.name, capability)
                error = ResolutionError(f"{strategy.name} failed: {exc}", source=strategy.name)
            else:
                logger.debug(LogTemplates.STRATEGY_SUCCEEDED, strategy.name, capability, subject)
                return result

            logger.warning(
                LogTemplates.STRATEGY_FAILED, strategy.name, capability, subject, error.code, error.message
            )
            if best is None or error.specificity > best.specificity:
                best = error

        if best is None:
            raise ResolutionUnavailableError(f"No strategy provides {capability}")
        raise best

    # ── AudioResolver ───────────────────────────────────────────────

    def is_url(self, query: str) -> bool:
        return QueryClassifier.is_url(query)

    def is_playlist_url(self, url: str) -> bool:
        return QueryClassifier.is_playlist_url(url)

    async def get_video_info(self, url_or_query: str) -> Track:
        if not url_or_query or not url_or_query.strip():
            raise InvalidQueryError(url_or_query or "")
        if not self.is_url(url_or_query):
            return await self.resolve(url_or_query)
        return await self._run_chain(
            "metadata", url_or_query, lambda s: s.get_video_info(url_or_query.strip())
        )

    async def get_audio_source(self, track: Track) -> StreamHandle:
        return await self._run_chain("streams", track.title, lambda s: s.get_audio_source(track))

    async def search(self, query: str, options: SearchOptions) -> list[Track]:
        if not query or not query.strip():
            raise InvalidQueryError(query or "")
        query = query.strip()
        fetch = min(options.limit * SEARCH_OVERFETCH_FACTOR, MAX_SEARCH_FETCH)

        async def _search(strategy: ResolutionStrategy) -> list[Track]:
            raw = await strategy.search(query, fetch)
            kept = ShortFormFilter.filter_and_rank(
                raw,
                exclude_short_form=options.exclude_short_form,
                prefer_long_form=options.prefer_long_form,
                min_duration=options.min_duration,
            )
            if not kept:
                raise TrackNotFoundError(f"No suitable results for '{query}'", source=strategy.name)
            return kept[: options.limit]

        return await self._run_chain("search", query, _search)

    async def expand_playlist(self, url: str, max_items: int) -> list[Track]:
        tracks = await self._run_chain(
            "playlists", url, lambda s: s.expand_playlist(url.strip(), max_items)
        )
        logger.info(LogTemplates.PLAYLIST_EXPANDED, url, len(tracks))
        return tracks[:max_items]

    async def resolve(self, query: str) -> Track:
        if not query or not query.strip():
            raise InvalidQueryError(query or "")
        if self.is_url(query):
            return await self.get_video_info(query)

        results = await self.search(
            query,
            SearchOptions(
                limit=1,
                exclude_short_form=True,
                prefer_long_form=True,
                min_duration=RESOLVE_MIN_DURATION_SECONDS,
            ),
        )
        return results[0]

    async def close(self) -> None:
        for strategy in self._strategies:
            try:
                await strategy.close()
            except Exception as exc:
                logger.warning(LogTemplates.STRATEGY_CLOSE_FAILED, strategy.name, exc)


def build_default_resolver(
    resolver_settings: ResolverSettings, audio_settings: AudioSettings
) -> FallbackAudioResolver:
    """Cobalt (optional), then yt-dlp, then the alternate search provider."""
    from .alternate_search_strategy import AlternateSearchStrategy
    from .cobalt_strategy import CobaltStrategy
    from .ytdlp_strategy import YtDlpStrategy

    strategies: list[ResolutionStrategy] = []
    if resolver_settings.cobalt_enabled:
        strategies.append(
            CobaltStrategy(
                resolver_settings.cobalt_api_url,
                timeout_seconds=resolver_settings.cobalt_timeout_seconds,
            )
        )
    strategies.append(
        YtDlpStrategy(
            resolver_settings.ytdlp_timeout_seconds,
            ytdlp_format=audio_settings.ytdlp_format,
        )
    )
    strategies.append(
        AlternateSearchStrategy(
            resolver_settings.alternate_timeout_seconds,
            search_prefix=resolver_settings.alternate_search_prefix,
            ytdlp_format=audio_settings.ytdlp_format,
        )
    )
    return FallbackAudioResolver(strategies)
