"""Core domain entities for the music bounded context."""

from __future__ import annotations

import random
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from discord_audio_queue.domain.music.value_objects import PlaybackState, TrackIdField
from discord_audio_queue.domain.shared.datetime_utils import utcnow
from discord_audio_queue.domain.shared.exceptions import (
    InvalidOperationError,
    InvalidPositionError,
)
from discord_audio_queue.domain.shared.messages import ErrorMessages
from discord_audio_queue.domain.shared.types import (
    DiscordSnowflake,
    DurationSeconds,
    HttpUrlStr,
    NonEmptyStr,
    TrackTitleStr,
    UtcDatetimeField,
    VolumePercent,
)

MIN_VOLUME = 0
MAX_VOLUME = 100


class Track(BaseModel):
    """Immutable value object representing a playable track."""

    model_config = ConfigDict(frozen=True, strict=True)

    id: TrackIdField
    title: TrackTitleStr
    webpage_url: HttpUrlStr
    duration_seconds: DurationSeconds = 0
    thumbnail_url: HttpUrlStr | None = None
    uploader: NonEmptyStr | None = None

    # Request metadata (set when queued)
    requested_by_id: DiscordSnowflake | None = None
    requested_by_name: NonEmptyStr | None = None
    added_at: UtcDatetimeField = Field(default_factory=utcnow)

    @property
    def has_known_duration(self) -> bool:
        return self.duration_seconds > 0

    @property
    def duration_formatted(self) -> str:
        """Format duration as M:SS or H:MM:SS."""
        if not self.duration_seconds:
            return "Live"

        hours, remainder = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    def with_requester(
        self, user_id: DiscordSnowflake, user_name: NonEmptyStr, added_at: datetime | None = None
    ) -> Track:
        """Return a copy of this track with requester metadata populated."""
        return self.model_copy(
            update={
                "requested_by_id": user_id,
                "requested_by_name": user_name,
                "added_at": added_at or utcnow(),
            }
        )

    def enrich(self, thumbnail_url: str | None = None, uploader: str | None = None) -> Track:
        """Return a copy with missing thumbnail/uploader filled in. Present values win."""
        update: dict[str, str] = {}
        if self.thumbnail_url is None and thumbnail_url and thumbnail_url.startswith("http"):
            update["thumbnail_url"] = thumbnail_url
        if self.uploader is None and uploader:
            update["uploader"] = uploader
        if not update:
            return self
        return self.model_copy(update=update)

    def was_requested_by(self, user_id: int) -> bool:
        return self.requested_by_id == user_id


class PlaybackQueue(BaseModel):
    """Per-guild track list and playback flags.

    ``tracks[0]`` is the current track whenever the queue is non-empty.
    Driving the transport is the job of the application layer; this entity
    only guards the list and the state machine.
    """

    model_config = ConfigDict(strict=True)

    guild_id: DiscordSnowflake
    tracks: list[Track] = Field(default_factory=list)
    state: PlaybackState = PlaybackState.IDLE
    loop_current: bool = False
    volume_percent: VolumePercent = 50
    created_at: UtcDatetimeField = Field(default_factory=utcnow)
    last_activity: UtcDatetimeField = Field(default_factory=utcnow)

    # ── Derived ─────────────────────────────────────────────────────

    @property
    def current(self) -> Track | None:
        return self.tracks[0] if self.tracks else None

    @property
    def upcoming(self) -> list[Track]:
        return self.tracks[1:]

    @property
    def length(self) -> int:
        return len(self.tracks)

    @property
    def is_empty(self) -> bool:
        return not self.tracks

    @property
    def playing(self) -> bool:
        return self.state.is_playing

    @property
    def paused(self) -> bool:
        return self.state.is_paused

    @property
    def is_destroyed(self) -> bool:
        return self.state is PlaybackState.DESTROYED

    @property
    def total_duration_seconds(self) -> int:
        return sum(t.duration_seconds for t in self.tracks)

    def touch(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = utcnow()

    # ── State machine ───────────────────────────────────────────────

    def transition_to(self, target: PlaybackState) -> None:
        """Move to ``target`` or raise ``InvalidOperationError``."""
        if self.state is target and target is not PlaybackState.DESTROYED:
            return
        if not self.state.can_transition_to(target):
            raise InvalidOperationError(operation=f"transition to {target.value}", current_state=self.state.value)
        self.state = target
        self.touch()

    # ── Mutations ───────────────────────────────────────────────────

    def append(self, track: Track) -> Track:
        """Add a track to the end of the queue and return the stored object."""
        self.tracks.append(track)
        self.touch()
        return track

    def drop_current(self) -> Track | None:
        """Remove and return ``tracks[0]``."""
        if not self.tracks:
            return None
        track = self.tracks.pop(0)
        self.touch()
        return track

    def enrich_current(self, thumbnail_url: str | None, uploader: str | None) -> Track | None:
        """Fill missing metadata on the current track only."""
        current = self.current
        if current is None:
            return None
        enriched = current.enrich(thumbnail_url=thumbnail_url, uploader=uploader)
        if enriched is not current:
            self.tracks[0] = enriched
        return enriched

    def clear_upcoming(self) -> int:
        """Remove every track except the current one. Returns the number removed."""
        removed = max(0, len(self.tracks) - 1)
        del self.tracks[1:]
        if removed:
            self.touch()
        return removed

    def clear_all(self) -> None:
        self.tracks.clear()
        self.touch()

    def remove_at(self, position: int) -> Track:
        """Remove the track at a 1-based position.

        Position 1 is the current track and must be skipped instead.
        """
        if position == 1:
            raise InvalidPositionError(position, len(self.tracks), message=ErrorMessages.CANNOT_REMOVE_CURRENT)
        if position < 1 or position > len(self.tracks):
            raise InvalidPositionError(position, len(self.tracks))
        track = self.tracks.pop(position - 1)
        self.touch()
        return track

    def shuffle_upcoming(self, rng: random.Random | None = None) -> bool:
        """Shuffle everything after the current track in place.

        Returns False when there are fewer than two tracks.
        """
        if len(self.tracks) < 2:
            return False
        upcoming = self.tracks[1:]
        (rng or random).shuffle(upcoming)
        self.tracks[1:] = upcoming
        self.touch()
        return True

    def set_volume(self, volume: int) -> int:
        """Clamp and store the volume percentage. Returns the stored value."""
        self.volume_percent = max(MIN_VOLUME, min(MAX_VOLUME, int(volume)))
        return self.volume_percent

    def set_loop(self, enabled: bool) -> bool:
        self.loop_current = enabled
        return self.loop_current

    def toggle_loop(self) -> bool:
        return self.set_loop(not self.loop_current)
