"""Stream resolution through a hosted Cobalt-style API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from discord_audio_queue.application.interfaces.audio_resolver import StreamHandle
from discord_audio_queue.domain.shared.exceptions import (
    ResolutionError,
    ResolutionTimeoutError,
    ResolutionUnavailableError,
    RestrictedContentError,
)
from discord_audio_queue.domain.shared.messages import LogTemplates

from .models import LOG_URL_TRUNCATE, CobaltRequest, CobaltResponse
from .strategy import ResolutionStrategy, classify_failure

if TYPE_CHECKING:
    from discord_audio_queue.domain.music.entities import Track

logger = logging.getLogger(__name__)

_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "User-Agent": "discord-audio-queue/1.0",
}


class CobaltStrategy(ResolutionStrategy):
    """Asks the hosted API for a direct audio URL. It supplies no metadata of its own."""

    name = "cobalt"
    provides_streams = True

    def __init__(
        self,
        api_url: str,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout_seconds)
        self._api_url = api_url
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds, connect=10.0),
                headers=_HEADERS,
            )
        return self._client

    async def get_audio_source(self, track: Track) -> StreamHandle:
        payload = CobaltRequest(url=track.webpage_url).model_dump()
        logger.debug(LogTemplates.COBALT_REQUEST, track.webpage_url[:LOG_URL_TRUNCATE])

        try:
            response = await self._get_client().post(self._api_url, json=payload, headers=_HEADERS)
        except httpx.TimeoutException as exc:
            raise ResolutionTimeoutError(f"Cobalt timed out: {exc}", source=self.name) from exc
        except httpx.HTTPError as exc:
            raise ResolutionUnavailableError(f"Cobalt request failed: {exc}", source=self.name) from exc

        if response.status_code != 200:
            raise self._error_from_response(response)

        try:
            body = CobaltResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ResolutionUnavailableError(f"Malformed Cobalt payload: {exc}", source=self.name) from exc

        stream_url = body.stream_url
        if stream_url is None:
            raise classify_failure(body.text or f"Cobalt returned status '{body.status}'", self.name)

        return StreamHandle(
            url=stream_url,
            title=track.title,
            uploader=track.uploader,
            thumbnail_url=track.thumbnail_url,
            duration_seconds=track.duration_seconds or None,
            source=self.name,
        )

    def _error_from_response(self, response: httpx.Response) -> ResolutionError:
        """Non-200 is "unavailable" unless the body says the media is restricted."""
        text = ""
        try:
            data = response.json()
            if isinstance(data, dict):
                text = str(data.get("text") or "")
        except ValueError:
            text = ""
        if text:
            err = classify_failure(text, self.name)
            if isinstance(err, RestrictedContentError):
                return err
        suffix = f": {text}" if text else ""
        return ResolutionUnavailableError(
            f"Cobalt answered HTTP {response.status_code}{suffix}", source=self.name
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
