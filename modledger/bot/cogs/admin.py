"""
modledger.bot.cogs.admin — Admin Slash Commands
=================================================

Discord slash commands for server admins:
- /set manager — which role counts as the moderator team
- /set track — which channel's messages are counted
- /set points — points per 1000 messages and per invite
- /exclude, /include — toggle tracking for a member
- /addpoints — signed manual adjustment
- /leaderboard — rank, grant bonuses and post the report
- /refresh-invites — rebuild every guild's invite snapshot

All commands are hidden from members without Administrator by default
(server owners can re-scope them in Integrations).  Confirmations are
ephemeral; ``/addpoints`` is public like the other award messages.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from modledger.bot.platform import identity_of
from modledger.constants import (
    MODERATOR_ROLE_ID,
    POINTS_PER_1000_MSG,
    POINTS_PER_INVITE,
    TRACKED_CHANNEL_ID,
)
from modledger.database.engine import run_db
from modledger.errors import ModLedgerError
from modledger.services import ledger_service
from modledger.services.settings_service import upsert_setting

if TYPE_CHECKING:
    from modledger.bot.core import ModLedgerBot

logger = logging.getLogger(__name__)

ADMIN_PERMISSIONS = discord.Permissions(administrator=True)


class Admin(commands.Cog, name="Admin"):
    """Server administration commands for ModLedger."""

    set_group = app_commands.Group(
        name="set",
        description="Configure bot settings",
        default_permissions=ADMIN_PERMISSIONS,
        guild_only=True,
    )

    def __init__(self, bot: ModLedgerBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # /set manager | track | points
    # -------------------------------------------------------------------
    @set_group.command(name="manager", description="Set the moderator team role")
    @app_commands.describe(role="The role that counts as moderator team")
    async def set_manager(self, interaction: discord.Interaction, role: discord.Role) -> None:
        await run_db(upsert_setting, self.bot.engine, key=MODERATOR_ROLE_ID, value=role.id)
        await interaction.response.send_message(
            f"✅ Moderator team role set to <@&{role.id}>", ephemeral=True,
        )

    @set_group.command(name="track", description="Set the tracking channel")
    @app_commands.describe(channel="The channel to track messages in")
    async def set_track(
        self, interaction: discord.Interaction, channel: discord.TextChannel,
    ) -> None:
        await run_db(upsert_setting, self.bot.engine, key=TRACKED_CHANNEL_ID, value=channel.id)
        await interaction.response.send_message(
            f"✅ Tracking channel set to <#{channel.id}>", ephemeral=True,
        )

    @set_group.command(name="points", description="Set point values")
    @app_commands.describe(
        msgs="Points per 1000 messages (default: 15)",
        invites="Points per invite (default: 1)",
    )
    async def set_points(
        self,
        interaction: discord.Interaction,
        msgs: int | None = None,
        invites: int | None = None,
    ) -> None:
        if msgs is not None:
            await run_db(upsert_setting, self.bot.engine, key=POINTS_PER_1000_MSG, value=msgs)
        if invites is not None:
            await run_db(upsert_setting, self.bot.engine, key=POINTS_PER_INVITE, value=invites)

        def fmt(v: int | None) -> str:
            return "unchanged" if v is None else str(v)

        await interaction.response.send_message(
            f"✅ Point values updated: {fmt(msgs)} per 1000 msgs, {fmt(invites)} per invite.",
            ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /exclude, /include
    # -------------------------------------------------------------------
    @app_commands.command(name="exclude", description="Exclude a moderator from tracking")
    @app_commands.describe(user="The user to exclude")
    @app_commands.default_permissions(administrator=True)
    @app_commands.guild_only()
    async def exclude(self, interaction: discord.Interaction, user: discord.User) -> None:
        await run_db(ledger_service.set_ignored, self.bot.engine, user.id, True, identity_of(user))
        await interaction.response.send_message(
            f"✅ <@{user.id}> has been excluded from tracking.", ephemeral=True,
        )

    @app_commands.command(name="include", description="Resume tracking an excluded moderator")
    @app_commands.describe(user="The user to include again")
    @app_commands.default_permissions(administrator=True)
    @app_commands.guild_only()
    async def include(self, interaction: discord.Interaction, user: discord.User) -> None:
        await run_db(ledger_service.set_ignored, self.bot.engine, user.id, False, identity_of(user))
        await interaction.response.send_message(
            f"✅ <@{user.id}> is tracked again.", ephemeral=True,
        )

    # -------------------------------------------------------------------
    # /addpoints
    # -------------------------------------------------------------------
    @app_commands.command(name="addpoints", description="Manually add points to a moderator")
    @app_commands.describe(
        user="The user to add points to",
        amount="Amount of points to add (negative to deduct)",
        reason="Reason for adding points",
    )
    @app_commands.default_permissions(administrator=True)
    @app_commands.guild_only()
    async def addpoints(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        amount: int,
        reason: str = "No reason provided",
    ) -> None:
        await run_db(
            ledger_service.grant_manual_points,
            self.bot.engine,
            user.id,
            amount,
            reason,
            identity_of(user),
            actor_id=interaction.user.id,
        )
        await interaction.response.send_message(
            f"✅ Added **{amount}** points to <@{user.id}>. Reason: {reason}",
        )

    # -------------------------------------------------------------------
    # /leaderboard, /refresh-invites
    # -------------------------------------------------------------------
    @app_commands.command(name="leaderboard", description="Manually trigger weekly leaderboard")
    @app_commands.default_permissions(administrator=True)
    @app_commands.guild_only()
    async def leaderboard(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        report = await self.bot.generate_leaderboard()
        await interaction.edit_original_response(
            content=(
                "✅ Leaderboard generated and sent to the tracked channel "
                f"({len(report.entries)} ranked)."
            ),
        )

    @app_commands.command(name="refresh-invites", description="Rebuild the invite cache")
    @app_commands.default_permissions(administrator=True)
    @app_commands.guild_only()
    async def refresh_invites(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        refreshed = await self.bot.refresh_invite_cache()
        await interaction.edit_original_response(
            content=f"✅ Invite cache refreshed for {refreshed} guild(s).",
        )

    # -------------------------------------------------------------------
    # Error handler
    # -------------------------------------------------------------------
    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        original = getattr(error, "original", error)
        if isinstance(original, ModLedgerError):
            content = f"❌ Error: {original.message}"
        elif isinstance(error, app_commands.CheckFailure):
            content = "🔒 You need the Administrator permission to use this command."
        else:
            logger.exception(
                "Admin command failed", exc_info=original,
                extra={"command": interaction.command.name if interaction.command else None},
            )
            content = "❌ Something went wrong. Check the bot logs."

        if interaction.response.is_done():
            await interaction.edit_original_response(content=content)
        else:
            await interaction.response.send_message(content, ephemeral=True)


async def setup(bot: ModLedgerBot) -> None:
    await bot.add_cog(Admin(bot))
