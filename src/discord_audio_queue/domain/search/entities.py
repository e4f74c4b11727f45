"""Search session aggregate: a paged, owner-bound view over search results."""

from __future__ import annotations

import math
from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from discord_audio_queue.domain.music.entities import Track
from discord_audio_queue.domain.music.value_objects import PageDirection
from discord_audio_queue.domain.shared.datetime_utils import is_older_than, utcnow
from discord_audio_queue.domain.shared.types import (
    DiscordSnowflake,
    NonEmptyStr,
    NonNegativeInt,
    PageIndex,
    UtcDatetimeField,
)


class SearchPageItem(BaseModel):
    """A result on a page together with its absolute index in the session."""

    model_config = ConfigDict(frozen=True)

    index: NonNegativeInt
    track: Track


class SearchPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: NonEmptyStr
    query: str
    items: list[SearchPageItem]
    page: PageIndex
    total_pages: NonNegativeInt
    total_results: NonNegativeInt

    @property
    def has_previous(self) -> bool:
        return self.page > 0

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages


class SearchSession(BaseModel):
    """Search results owned by one user, browsed a page at a time."""

    model_config = ConfigDict(strict=True)

    PAGE_SIZE: ClassVar[int] = 3
    MAX_RESULTS: ClassVar[int] = 15

    session_id: NonEmptyStr
    owner_id: DiscordSnowflake
    query: str
    results: list[Track] = Field(default_factory=list)
    current_page: PageIndex = 0
    created_at: UtcDatetimeField = Field(default_factory=utcnow)

    @classmethod
    def create(
        cls, owner_id: int, query: str, results: list[Track], now: datetime | None = None
    ) -> SearchSession:
        """Build a session whose id is derived from the owner and creation time."""
        created_at = now or utcnow()
        session_id = f"{owner_id}-{int(created_at.timestamp() * 1000)}"
        return cls(
            session_id=session_id,
            owner_id=owner_id,
            query=query,
            results=list(results[: cls.MAX_RESULTS]),
            created_at=created_at,
        )

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.results) / self.PAGE_SIZE)

    def is_owned_by(self, user_id: int) -> bool:
        return self.owner_id == user_id

    def is_expired(self, ttl_seconds: float, now: datetime | None = None) -> bool:
        return is_older_than(self.created_at, ttl_seconds, now)

    def can_move(self, direction: PageDirection) -> bool:
        target = self.current_page + direction.value
        return 0 <= target < self.total_pages

    def move(self, direction: PageDirection) -> bool:
        """Step one page. Out-of-range moves return False and change nothing."""
        if not self.can_move(direction):
            return False
        self.current_page += direction.value
        return True

    def has_index(self, index: int) -> bool:
        return 0 <= index < len(self.results)

    def page(self) -> SearchPage:
        start = self.current_page * self.PAGE_SIZE
        items = [
            SearchPageItem(index=i, track=t)
            for i, t in enumerate(self.results[start : start + self.PAGE_SIZE], start=start)
        ]
        return SearchPage(
            session_id=self.session_id,
            query=self.query,
            items=items,
            page=self.current_page,
            total_pages=self.total_pages,
            total_results=len(self.results),
        )
