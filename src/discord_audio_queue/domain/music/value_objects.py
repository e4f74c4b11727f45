"""Immutable value objects for the music bounded context."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from pydantic import PlainSerializer, PlainValidator

from discord_audio_queue.domain.shared.messages import ErrorMessages

_YOUTUBE_ID_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([a-zA-Z0-9_-]{11})"),
)


@dataclass(frozen=True)
class TrackId:
    """Typically a YouTube video ID or a hash of the URL."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError(ErrorMessages.EMPTY_TRACK_ID)

    def __str__(self) -> str:
        return self.value

    def __hash__(self) -> int:
        return hash(self.value)

    @classmethod
    def from_url(cls, url: str) -> TrackId:
        """Extract track ID from a URL, using YouTube video ID or a URL hash as fallback."""
        for pattern in _YOUTUBE_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return cls(match.group(1))

        url_hash = hashlib.md5(url.encode()).hexdigest()[:16]
        return cls(url_hash)


# Serializes as plain string in JSON, stores as TrackId in the model.
TrackIdField = Annotated[
    TrackId,
    PlainValidator(lambda v: TrackId(v) if isinstance(v, str) else v),
    PlainSerializer(lambda v: v.value, return_type=str),
]


class PlaybackState(Enum):
    """Playback state with enforced transitions.

    State transitions:
    - IDLE -> CONNECTING (first join) or RESOLVING (tracks waiting, handle present)
    - CONNECTING -> RESOLVING | IDLE
    - RESOLVING -> PLAYING (stream accepted) or IDLE (nothing playable left)
    - PLAYING <-> PAUSED
    - PLAYING/PAUSED -> RESOLVING (advance) or IDLE (queue drained)
    - Any -> DESTROYED (stop / reaper / disconnect); DESTROYED is terminal
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    RESOLVING = "resolving"
    PLAYING = "playing"
    PAUSED = "paused"
    DESTROYED = "destroyed"

    def can_transition_to(self, target: PlaybackState) -> bool:
        """Check if transition to target state is valid."""
        if self is PlaybackState.DESTROYED:
            return False
        if target is PlaybackState.DESTROYED:
            return True
        valid_transitions = {
            PlaybackState.IDLE: {
                PlaybackState.CONNECTING,
                PlaybackState.RESOLVING,
                PlaybackState.IDLE,
            },
            PlaybackState.CONNECTING: {PlaybackState.RESOLVING, PlaybackState.IDLE},
            PlaybackState.RESOLVING: {
                PlaybackState.PLAYING,
                PlaybackState.RESOLVING,
                PlaybackState.IDLE,
            },
            PlaybackState.PLAYING: {
                PlaybackState.PAUSED,
                PlaybackState.RESOLVING,
                PlaybackState.IDLE,
            },
            PlaybackState.PAUSED: {
                PlaybackState.PLAYING,
                PlaybackState.RESOLVING,
                PlaybackState.IDLE,
            },
        }
        return target in valid_transitions.get(self, set())

    @property
    def is_active(self) -> bool:
        return self in {PlaybackState.PLAYING, PlaybackState.PAUSED}

    @property
    def is_playing(self) -> bool:
        return self == PlaybackState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self == PlaybackState.PAUSED


class QueryKind(Enum):
    """What a raw user query turned out to be."""

    MEDIA_URL = "media_url"
    PLAYLIST_URL = "playlist_url"
    SEARCH_TEXT = "search_text"


class PageDirection(Enum):
    """Pagination direction for search results."""

    PREVIOUS = -1
    NEXT = 1


@dataclass(frozen=True)
class SearchOptions:
    """Knobs for a provider search."""

    limit: int = 15
    exclude_short_form: bool = True
    prefer_long_form: bool = True
    min_duration: int | None = None

    def __post_init__(self) -> None:
        if self.limit <= 0:
            raise ValueError(ErrorMessages.INVALID_SEARCH_LIMIT)
