"""Discord UI views and components."""

from __future__ import annotations

from discord_audio_queue.infrastructure.discord.views.base_view import BaseInteractiveView
from discord_audio_queue.infrastructure.discord.views.search_view import SearchResultsView

__all__ = [
    "BaseInteractiveView",
    "SearchResultsView",
]
