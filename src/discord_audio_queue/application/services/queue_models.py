"""DTOs for the playback application service."""

from __future__ import annotations

from pydantic import BaseModel

from ...domain.music.entities import Track
from ...domain.music.value_objects import PlaybackState
from ...domain.shared.types import NonNegativeInt, VolumePercent


class EnqueueResult(BaseModel):
    tracks: list[Track]
    position: NonNegativeInt = 0
    queue_length: NonNegativeInt = 0
    started_playback: bool = False
    skipped: NonNegativeInt = 0

    @property
    def track(self) -> Track | None:
        return self.tracks[0] if self.tracks else None

    @property
    def is_playlist(self) -> bool:
        return len(self.tracks) > 1 or self.skipped > 0


class QueueSnapshot(BaseModel):

    guild_id: int
    current_track: Track | None
    upcoming_tracks: list[Track]
    total_duration_seconds: NonNegativeInt
    loop_current: bool
    volume_percent: VolumePercent
    state: PlaybackState

    @property
    def total_tracks(self) -> int:
        return len(self.upcoming_tracks) + (1 if self.current_track else 0)

    @property
    def is_empty(self) -> bool:
        return self.current_track is None

    def page(self, page: int, per_page: int = 10) -> list[tuple[int, Track]]:
        """Upcoming tracks on a 1-based page, paired with their 1-based queue position."""
        start = max(0, (page - 1) * per_page)
        numbered = list(enumerate(self.upcoming_tracks, start=2))
        return numbered[start : start + per_page]

    def page_count(self, per_page: int = 10) -> int:
        return max(1, -(-len(self.upcoming_tracks) // per_page))
