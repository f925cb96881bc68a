"""
modledger.bot.cogs.stats — Member Self-Service Commands
=========================================================

- /stats [user] — counters and point breakdown as an embed
- /balance — your own total in one line

Totals always come from :func:`modledger.engine.points.compute_breakdown`
with the current rates, so they match the dashboard exactly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from modledger.bot.embeds import build_stats_embed
from modledger.database.engine import run_db
from modledger.engine.points import compute_breakdown
from modledger.services.ledger_service import get_moderator_by_account

if TYPE_CHECKING:
    from modledger.bot.core import ModLedgerBot


class Stats(commands.Cog, name="Stats"):
    """Read-only views of the ledger."""

    def __init__(self, bot: ModLedgerBot) -> None:
        self.bot = bot

    @app_commands.command(name="stats", description="View moderator stats")
    @app_commands.describe(user="The user to view stats for (defaults to yourself)")
    async def stats(
        self, interaction: discord.Interaction, user: discord.User | None = None,
    ) -> None:
        target = user or interaction.user
        moderator = await run_db(get_moderator_by_account, self.bot.engine, target.id)
        if moderator is None:
            await interaction.response.send_message(
                f"❌ No stats found for <@{target.id}>. Are they a tracked moderator?",
                ephemeral=True,
            )
            return

        rates = await run_db(self.bot.settings.point_rates)
        embed = build_stats_embed(
            moderator,
            compute_breakdown(moderator, rates),
            avatar_url=target.display_avatar.url,
        )
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="balance", description="Check your current points balance")
    async def balance(self, interaction: discord.Interaction) -> None:
        moderator = await run_db(get_moderator_by_account, self.bot.engine, interaction.user.id)
        if moderator is None:
            await interaction.response.send_message(
                "❌ You are not a tracked moderator.", ephemeral=True,
            )
            return

        rates = await run_db(self.bot.settings.point_rates)
        total = compute_breakdown(moderator, rates).total
        await interaction.response.send_message(
            f"💰 Your current total balance is **{total}** points.",
        )


async def setup(bot: ModLedgerBot) -> None:
    await bot.add_cog(Stats(bot))
