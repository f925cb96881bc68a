"""
modledger.bot.cogs.tracking — Live Message Counting
=====================================================

Listens for on_message events, normalizes them into
:class:`~modledger.engine.events.MessageEvent` and hands them to
:func:`modledger.services.tracking_service.handle_message`.

All gating (tracked channel, moderator role, exclusion) lives in the
service; this cog only translates and contains failures.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from modledger.services.tracking_service import handle_message

if TYPE_CHECKING:
    from modledger.bot.core import ModLedgerBot

logger = logging.getLogger(__name__)


class Tracking(commands.Cog, name="Tracking"):
    """Counts moderator messages in the tracked channel."""

    def __init__(self, bot: ModLedgerBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """Fires on every message the bot can see."""
        if message.author.bot or message.guild is None:
            return
        try:
            await handle_message(
                self.bot.engine,
                self.bot.settings,
                self.bot.platform,
                self.bot.message_event(message),
            )
        except Exception:
            logger.exception(
                "Error processing message %s from user %s",
                message.id,
                message.author.id,
                extra={"event_type": "message", "user_id": message.author.id},
            )


async def setup(bot: ModLedgerBot) -> None:
    await bot.add_cog(Tracking(bot))
