"""
modledger.bot.cogs.invites — Invite Attribution Events
========================================================

Keeps the per-guild invite snapshots current and attributes member joins
to the invite whose use count went up.  Requires the GUILD_MEMBERS
privileged intent for ``on_member_join`` and the Manage Server permission
to list invites.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

if TYPE_CHECKING:
    from modledger.bot.core import ModLedgerBot

logger = logging.getLogger(__name__)


class Invites(commands.Cog, name="Invites"):
    """Credits moderators for members who join through their invites."""

    def __init__(self, bot: ModLedgerBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        try:
            if member.bot:
                return
            inviter_id = await self.bot.invites.handle_member_join(member.guild.id, member.id)
            logger.info(
                "Member joined: %s (ID: %d), credited inviter: %s",
                member.name, member.id, inviter_id,
            )
        except Exception:
            logger.exception(
                "Error processing member_join for %s", member.id,
                extra={"event_type": "member_join", "user_id": member.id},
            )

    @commands.Cog.listener()
    async def on_invite_create(self, invite: discord.Invite) -> None:
        await self._refresh(invite.guild, "invite_create")

    @commands.Cog.listener()
    async def on_invite_delete(self, invite: discord.Invite) -> None:
        await self._refresh(invite.guild, "invite_delete")

    @commands.Cog.listener()
    async def on_guild_join(self, guild: discord.Guild) -> None:
        await self._refresh(guild, "guild_join")

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        self.bot.invites.cache.discard(guild.id)
        logger.info("Left guild %s; invite snapshot dropped", guild.id)

    async def _refresh(self, guild: discord.abc.Snowflake | None, event_type: str) -> None:
        if guild is None:
            return
        try:
            await self.bot.invites.refresh_guild(guild.id)
        except Exception:
            logger.exception(
                "Error refreshing invites for guild %s", guild.id,
                extra={"event_type": event_type, "guild_id": guild.id},
            )


async def setup(bot: ModLedgerBot) -> None:
    await bot.add_cog(Invites(bot))
