"""
Music Domain Services

Domain services containing business logic that doesn't naturally fit
within a single entity or value object.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Protocol, TypeVar

from discord_audio_queue.domain.music.entities import Track
from discord_audio_queue.domain.music.value_objects import QueryKind
from discord_audio_queue.domain.shared.exceptions import (
    DurationExceededError,
    InvalidQueryError,
    ShortFormRejectedError,
)


class _Candidate(Protocol):
    @property
    def title(self) -> str: ...

    @property
    def duration_seconds(self) -> int: ...


T = TypeVar("T", bound=_Candidate)

_MEDIA_URL_PATTERNS = (
    re.compile(r"^https?://(?:www\.|m\.)?youtube\.com/watch\?", re.IGNORECASE),
    re.compile(r"^https?://youtu\.be/[\w-]+", re.IGNORECASE),
    re.compile(r"^https?://(?:www\.)?youtube\.com/embed/[\w-]+", re.IGNORECASE),
    re.compile(r"^https?://(?:www\.)?youtube\.com/shorts/[\w-]+", re.IGNORECASE),
    re.compile(r"^https?://music\.youtube\.com/watch\?", re.IGNORECASE),
    re.compile(r"^https?://(?:www\.|m\.)?soundcloud\.com/.+", re.IGNORECASE),
)
_ANY_URL = re.compile(r"^https?://\S+$", re.IGNORECASE)
_PLAYLIST_MARKERS = (
    re.compile(r"[?&]list=[\w-]+"),
    re.compile(r"/playlist\?"),
    re.compile(r"soundcloud\.com/[^/]+/sets/", re.IGNORECASE),
)


class QueryClassifier:
    """Decides whether a raw query is a media URL, a playlist URL or search text."""

    @staticmethod
    def is_url(query: str) -> bool:
        query = query.strip()
        return any(p.match(query) for p in _MEDIA_URL_PATTERNS) or bool(_ANY_URL.match(query))

    @staticmethod
    def is_playlist_url(url: str) -> bool:
        url = url.strip()
        if not _ANY_URL.match(url):
            return False
        return any(p.search(url) for p in _PLAYLIST_MARKERS)

    @classmethod
    def classify(cls, query: str) -> QueryKind:
        """Classify a query. Empty input is an ``InvalidQueryError``."""
        if not query or not query.strip():
            raise InvalidQueryError(query or "")
        if cls.is_playlist_url(query):
            return QueryKind.PLAYLIST_URL
        if cls.is_url(query):
            return QueryKind.MEDIA_URL
        return QueryKind.SEARCH_TEXT


class ShortFormFilter:
    """Rules for keeping short-form clips out of the queue."""

    MAX_SHORT_FORM_SECONDS = 60
    TITLE_MARKERS = ("#shorts", "#short", "tiktok", "shorts")
    LONG_FORM_KEYWORDS = ("official", "audio", "song", "music", "lyrics", "full")

    @classmethod
    def is_short_form(cls, title: str, duration_seconds: int) -> bool:
        """A candidate is short-form when its known duration is short or its title says so."""
        if 0 < duration_seconds <= cls.MAX_SHORT_FORM_SECONDS:
            return True
        lowered = title.lower()
        return any(marker in lowered for marker in cls.TITLE_MARKERS)

    @classmethod
    def keyword_score(cls, title: str) -> int:
        lowered = title.lower()
        return sum(1 for keyword in cls.LONG_FORM_KEYWORDS if keyword in lowered)

    @classmethod
    def filter_and_rank(
        cls,
        candidates: Iterable[T],
        *,
        exclude_short_form: bool = True,
        prefer_long_form: bool = False,
        min_duration: int | None = None,
    ) -> list[T]:
        """Drop short-form and too-short candidates, then optionally rank by keyword score.

        Ranking is stable: equal scores keep provider order.
        """
        kept: list[T] = []
        for candidate in candidates:
            if exclude_short_form and cls.is_short_form(candidate.title, candidate.duration_seconds):
                continue
            if (
                min_duration is not None
                and candidate.duration_seconds > 0
                and candidate.duration_seconds < min_duration
            ):
                continue
            kept.append(candidate)

        if prefer_long_form:
            kept.sort(key=lambda c: cls.keyword_score(c.title), reverse=True)
        return kept


class TrackDurationPolicy:
    """Final duration checks applied after a track is fully resolved."""

    def __init__(self, max_song_duration_seconds: int = 3600) -> None:
        self.max_song_duration_seconds = max_song_duration_seconds

    def validate(self, track: Track) -> Track:
        """Return the track, or raise when its duration is out of bounds.

        Unknown or live durations (0) pass.
        """
        duration = track.duration_seconds
        if 0 < duration <= ShortFormFilter.MAX_SHORT_FORM_SECONDS:
            raise ShortFormRejectedError(track.title, duration)
        if duration > self.max_song_duration_seconds:
            raise DurationExceededError(track.title, duration, self.max_song_duration_seconds)
        return track
