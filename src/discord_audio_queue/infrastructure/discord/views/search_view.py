"""Paged search results with select, previous/next and cancel buttons."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import discord

from discord_audio_queue.domain.music.value_objects import PageDirection
from discord_audio_queue.domain.search.entities import SearchPage, SearchSession
from discord_audio_queue.domain.shared.exceptions import DomainError
from discord_audio_queue.domain.shared.messages import DiscordUIMessages
from discord_audio_queue.infrastructure.discord.views.base_view import BaseInteractiveView
from discord_audio_queue.utils.reply import truncate

if TYPE_CHECKING:
    from ....application.services.queue_models import EnqueueResult
    from ....application.services.search_service import SearchSessionManager
    from ....domain.music.entities import Track

EnqueueCallback = Callable[[discord.Interaction, "Track"], Awaitable["EnqueueResult"]]


def build_search_embed(page: SearchPage) -> discord.Embed:
    embed = discord.Embed(
        title=DiscordUIMessages.EMBED_SEARCH_RESULTS.format(query=truncate(page.query, 60)),
        color=discord.Color.blurple(),
    )
    for slot, item in enumerate(page.items, start=1):
        track = item.track
        uploader = track.uploader or DiscordUIMessages.UNKNOWN_UPLOADER
        embed.add_field(
            name=f"{slot}. {truncate(track.title, 80)}",
            value=f"{uploader} · {track.duration_formatted}",
            inline=False,
        )
    embed.set_footer(
        text=DiscordUIMessages.SEARCH_PAGE_FOOTER.format(
            page=page.page + 1,
            total_pages=max(1, page.total_pages),
            total=page.total_results,
        )
    )
    return embed


class SearchResultsView(BaseInteractiveView):
    """Buttons act on the owner's session; every check lives in the session manager."""

    def __init__(
        self,
        *,
        session_id: str,
        search_service: SearchSessionManager,
        enqueue: EnqueueCallback,
        timeout: float | None = 300.0,
    ) -> None:
        super().__init__(timeout=timeout)
        self._session_id = session_id
        self._search_service = search_service
        self._enqueue = enqueue
        self._slot_buttons = [self.select_one, self.select_two, self.select_three]
        self.refresh(search_service.page(session_id))

    @property
    def session_id(self) -> str:
        return self._session_id

    def refresh(self, page: SearchPage) -> None:
        """Enable only the buttons that make sense on ``page``."""
        for slot, button in enumerate(self._slot_buttons):
            button.disabled = slot >= len(page.items)
        self.previous_page.disabled = not page.has_previous
        self.next_page.disabled = not page.has_next

    # ── Selection ───────────────────────────────────────────────────

    @discord.ui.button(label="1", style=discord.ButtonStyle.primary, row=0)
    async def select_one(
        self, interaction: discord.Interaction, button: discord.ui.Button[SearchResultsView]
    ) -> None:
        await self._select_slot(interaction, 0)

    @discord.ui.button(label="2", style=discord.ButtonStyle.primary, row=0)
    async def select_two(
        self, interaction: discord.Interaction, button: discord.ui.Button[SearchResultsView]
    ) -> None:
        await self._select_slot(interaction, 1)

    @discord.ui.button(label="3", style=discord.ButtonStyle.primary, row=0)
    async def select_three(
        self, interaction: discord.Interaction, button: discord.ui.Button[SearchResultsView]
    ) -> None:
        await self._select_slot(interaction, 2)

    async def _select_slot(self, interaction: discord.Interaction, slot: int) -> None:
        try:
            page = self._search_service.page(self._session_id)
        except DomainError as exc:
            await self._reject(interaction, exc)
            return

        index = page.page * SearchSession.PAGE_SIZE + slot
        await interaction.response.defer()

        outcome: list[EnqueueResult] = []

        async def _enqueue(track: Track) -> None:
            outcome.append(await self._enqueue(interaction, track))

        try:
            track = await self._search_service.select(
                self._session_id, interaction.user.id, index, enqueue=_enqueue
            )
        except DomainError as exc:
            await interaction.followup.send(
                DiscordUIMessages.ERROR_GENERIC.format(error=exc.message), ephemeral=True
            )
            return

        self.stop()
        self._disable_buttons()
        result = outcome[0] if outcome else None
        if result is not None and not result.started_playback:
            content = DiscordUIMessages.ACTION_QUEUED.format(
                title=truncate(track.title, 80), position=result.position
            )
        else:
            content = DiscordUIMessages.ACTION_NOW_PLAYING.format(title=truncate(track.title, 80))
        await interaction.edit_original_response(content=content, embed=None, view=self)

    # ── Navigation ──────────────────────────────────────────────────

    @discord.ui.button(label="◀ Previous", style=discord.ButtonStyle.secondary, row=1)
    async def previous_page(
        self, interaction: discord.Interaction, button: discord.ui.Button[SearchResultsView]
    ) -> None:
        await self._move(interaction, PageDirection.PREVIOUS)

    @discord.ui.button(label="Next ▶", style=discord.ButtonStyle.secondary, row=1)
    async def next_page(
        self, interaction: discord.Interaction, button: discord.ui.Button[SearchResultsView]
    ) -> None:
        await self._move(interaction, PageDirection.NEXT)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.danger, row=1)
    async def cancel_search(
        self, interaction: discord.Interaction, button: discord.ui.Button[SearchResultsView]
    ) -> None:
        try:
            self._search_service.cancel(self._session_id, interaction.user.id)
        except DomainError as exc:
            await self._reject(interaction, exc)
            return

        self.stop()
        self._disable_buttons()
        await interaction.response.edit_message(
            content=DiscordUIMessages.SEARCH_CANCELLED, embed=None, view=self
        )

    async def _move(self, interaction: discord.Interaction, direction: PageDirection) -> None:
        try:
            page = self._search_service.paginate(self._session_id, interaction.user.id, direction)
        except DomainError as exc:
            await self._reject(interaction, exc)
            return

        self.refresh(page)
        await interaction.response.edit_message(embed=build_search_embed(page), view=self)

    async def _reject(self, interaction: discord.Interaction, error: DomainError) -> None:
        await interaction.response.send_message(
            DiscordUIMessages.ERROR_GENERIC.format(error=error.message), ephemeral=True
        )

    async def on_timeout(self) -> None:
        self._disable_buttons()
        await self._edit_original(DiscordUIMessages.SEARCH_EXPIRED)
