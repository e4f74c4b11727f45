"""Pydantic models for provider payloads and yt-dlp configuration.

These are infrastructure-specific models for parsing external yt-dlp and
Cobalt data and for configuring yt-dlp options.
"""

from __future__ import annotations

from typing import Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from discord_audio_queue.domain.shared.types import (
    HttpUrlStr,
    NonEmptyStr,
    NonNegativeInt,
    PositiveInt,
)

DEFAULT_RETRIES: Final[int] = 3
DEFAULT_SOCKET_TIMEOUT: Final[int] = 10
DEFAULT_HTTP_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB
LOG_URL_TRUNCATE: Final[int] = 60
SEARCH_OVERFETCH_FACTOR: Final[int] = 2
MAX_SEARCH_FETCH: Final[int] = 50


def _coerce_optional_str(v: Any) -> str | None:
    if not isinstance(v, str) or not v.strip():
        return None
    return v


def _coerce_non_negative_int(v: Any) -> int | None:
    if v is None or isinstance(v, bool):
        return None
    try:
        val = int(v)
        return val if val >= 0 else None
    except (TypeError, ValueError):
        return None


# ── yt-dlp payloads ────────────────────────────────────────────────────


class AudioFormatInfo(BaseModel):
    """A single format entry from yt-dlp extraction."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None
    acodec: NonEmptyStr | None = None
    vcodec: NonEmptyStr | None = None
    abr: float | None = None
    http_headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("url", "acodec", "vcodec", mode="before")
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        return _coerce_optional_str(v)

    @field_validator("abr", mode="before")
    @classmethod
    def _coerce_abr(cls, v: Any) -> float | None:
        try:
            return float(v) if v is not None else None
        except (TypeError, ValueError):
            return None

    @property
    def is_audio(self) -> bool:
        return bool(self.url) and self.acodec not in (None, "none")


class ThumbnailInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str | None = None


class YtDlpTrackInfo(BaseModel):
    """Trimmed yt-dlp extraction result for track conversion.

    Extra fields from yt-dlp are silently ignored, keeping memory usage low.
    Before-validators coerce garbage from external yt-dlp data gracefully.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: NonEmptyStr | None = None
    webpage_url: HttpUrlStr | None = None
    url: NonEmptyStr | None = None
    original_url: HttpUrlStr | None = None
    title: NonEmptyStr | None = None
    duration: NonNegativeInt | None = None
    thumbnail: HttpUrlStr | None = None
    thumbnails: list[ThumbnailInfo] = Field(default_factory=list)
    uploader: NonEmptyStr | None = None
    channel: NonEmptyStr | None = None
    availability: NonEmptyStr | None = None
    live_status: NonEmptyStr | None = None
    http_headers: dict[str, str] = Field(default_factory=dict)
    formats: list[AudioFormatInfo] = Field(default_factory=list)

    @field_validator(
        "id", "url", "title", "uploader", "channel", "availability", "live_status",
        mode="before",
    )
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        """Convert empty / whitespace-only / non-string values to None."""
        return _coerce_optional_str(v)

    @field_validator("webpage_url", "original_url", "thumbnail", mode="before")
    @classmethod
    def _coerce_http_url(cls, v: Any) -> str | None:
        v = _coerce_optional_str(v)
        if v is None or not v.startswith(("http://", "https://")):
            return None
        return v

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v: Any) -> int | None:
        """Coerce to non-negative int; return None for garbage values."""
        return _coerce_non_negative_int(v)

    @field_validator("thumbnails", "formats", mode="before")
    @classmethod
    def _coerce_list(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [item for item in v if isinstance(item, dict)]

    @field_validator("http_headers", mode="before")
    @classmethod
    def _coerce_headers(cls, v: Any) -> dict[str, str]:
        if not isinstance(v, dict):
            return {}
        return {str(k): str(val) for k, val in v.items()}

    @property
    def page_url(self) -> str | None:
        """Canonical page URL; flat entries only carry ``url``."""
        if self.webpage_url:
            return self.webpage_url
        if self.url and self.url.startswith(("http://", "https://")):
            return self.url
        return self.original_url

    @property
    def best_thumbnail(self) -> str | None:
        if self.thumbnail:
            return self.thumbnail
        for thumb in reversed(self.thumbnails):
            if thumb.url and thumb.url.startswith(("http://", "https://")):
                return thumb.url
        return None

    @property
    def best_uploader(self) -> str | None:
        return self.uploader or self.channel

    def stream_url(self) -> str | None:
        """Direct media URL: the selected format, else the best audio-only format."""
        if self.url and self.url != self.webpage_url:
            return self.url
        audio = [f for f in self.formats if f.is_audio]
        audio_only = [f for f in audio if f.vcodec in (None, "none")]
        candidates = audio_only or audio
        if not candidates:
            return None
        return max(candidates, key=lambda f: f.abr or 0.0).url


class YtDlpPlaylistInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str | None = None
    entries: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("entries", mode="before")
    @classmethod
    def _coerce_entries(cls, v: Any) -> list[dict[str, Any]]:
        if v is None:
            return []
        return [e for e in v if isinstance(e, dict)]


# ── yt-dlp option models ───────────────────────────────────────────────


class YtDlpOpts(BaseModel):
    """Typed yt-dlp configuration options passed to YoutubeDL."""

    model_config = ConfigDict(frozen=True)

    quiet: bool = True
    no_warnings: bool = True
    noprogress: bool = True
    noplaylist: bool = True
    default_search: NonEmptyStr = "ytsearch"
    forceipv4: bool = True
    retries: PositiveInt = DEFAULT_RETRIES
    socket_timeout: PositiveInt = DEFAULT_SOCKET_TIMEOUT
    http_chunk_size: PositiveInt = DEFAULT_HTTP_CHUNK_SIZE
    format: NonEmptyStr | None = None
    skip_download: bool = True
    extract_flat: NonEmptyStr | bool = False
    playlistend: PositiveInt | None = None
    ignoreerrors: bool = False


# ── Cobalt payloads ────────────────────────────────────────────────────


class CobaltRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: HttpUrlStr
    isAudioOnly: bool = True  # noqa: N815
    aFormat: str = "best"  # noqa: N815
    disableMetadata: bool = False  # noqa: N815


class CobaltResponse(BaseModel):
    """Cobalt answers ``status`` plus either ``url`` or an error ``text``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    status: Literal["stream", "success", "redirect", "tunnel", "error", "rate-limit", "picker"]
    url: str | None = None
    text: str | None = None

    @property
    def stream_url(self) -> str | None:
        if self.status in ("stream", "success", "redirect", "tunnel") and self.url:
            if self.url.startswith(("http://", "https://")):
                return self.url
        return None
