"""Base class for interactive Discord views with common patterns."""

from __future__ import annotations

import logging

import discord

logger = logging.getLogger(__name__)


class BaseInteractiveView(discord.ui.View):
    """Base view providing message tracking and button disabling."""

    def __init__(self, *, timeout: float | None = 180.0) -> None:
        super().__init__(timeout=timeout)
        self._message: discord.Message | None = None

    def set_message(self, message: discord.Message) -> None:
        self._message = message

    def _disable_buttons(self) -> None:
        for item in self.children:
            if isinstance(item, discord.ui.Button):
                item.disabled = True

    async def _edit_original(self, content: str, *, embed: discord.Embed | None = None) -> None:
        """Edit the tracked message outside an interaction, e.g. on timeout."""
        if self._message is None:
            return
        try:
            await self._message.edit(content=content, embed=embed, view=self)
        except discord.HTTPException:
            logger.debug("Failed to edit view message %s", self._message.id)

    async def _edit_view(self) -> None:
        """Push the current button state to the tracked message, keeping its content."""
        if self._message is None:
            return
        try:
            await self._message.edit(view=self)
        except discord.HTTPException:
            logger.debug("Failed to edit view message %s", self._message.id)
