"""
modledger.bot.embeds — Discord embed builders
==============================================

All embed construction lives here so the platform adapter and cogs only
supply data — no layout concerns.
"""

from __future__ import annotations

import discord

from modledger.constants import utcnow
from modledger.database.models import Moderator
from modledger.engine.points import PointBreakdown


def build_report_embed(title: str, text: str) -> discord.Embed:
    """Gold, timestamped embed used for the leaderboard report."""
    return discord.Embed(
        title=title,
        description=text,
        color=discord.Color.gold(),
        timestamp=utcnow(),
    )


def build_stats_embed(
    moderator: Moderator,
    breakdown: PointBreakdown,
    avatar_url: str | None = None,
) -> discord.Embed:
    """Per-moderator counters and point components."""
    embed = discord.Embed(
        title=f"Stats for {moderator.username}",
        color=discord.Color.green(),
    )
    if avatar_url:
        embed.set_thumbnail(url=avatar_url)
    embed.add_field(name="Messages", value=str(moderator.message_count), inline=True)
    embed.add_field(name="Invites", value=str(moderator.invite_count), inline=True)
    embed.add_field(name="Points (Messages)", value=str(breakdown.message_points), inline=True)
    embed.add_field(name="Points (Invites)", value=str(breakdown.invite_points), inline=True)
    embed.add_field(
        name="Points (Leaderboard)", value=str(breakdown.leaderboard_points), inline=True,
    )
    embed.add_field(name="Points (Manual)", value=str(breakdown.manual_points), inline=True)
    embed.add_field(name="Total Points", value=str(breakdown.total), inline=False)
    if moderator.is_ignored:
        embed.set_footer(text="Excluded from tracking")
    return embed
