"""Audio infrastructure - resolution strategies and the fallback resolver."""

from discord_audio_queue.infrastructure.audio.alternate_search_strategy import (
    AlternateSearchStrategy,
)
from discord_audio_queue.infrastructure.audio.cobalt_strategy import CobaltStrategy
from discord_audio_queue.infrastructure.audio.fallback_resolver import (
    FallbackAudioResolver,
    build_default_resolver,
)
from discord_audio_queue.infrastructure.audio.strategy import ResolutionStrategy
from discord_audio_queue.infrastructure.audio.ytdlp_strategy import YtDlpStrategy

__all__ = [
    "AlternateSearchStrategy",
    "CobaltStrategy",
    "FallbackAudioResolver",
    "ResolutionStrategy",
    "YtDlpStrategy",
    "build_default_resolver",
]
