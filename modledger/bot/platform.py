"""
modledger.bot.platform — discord.py Implementation of ChatPlatform
===================================================================

Translates the core's platform queries into discord.py calls and
normalizes the results into :mod:`modledger.engine.events` dataclasses.

Every network call is bounded by ``PLATFORM_TIMEOUT_SECONDS``; timeouts
and HTTP failures surface as
:class:`~modledger.errors.UpstreamUnavailableError` so the services can
treat them as recoverable.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

import discord

from modledger.bot.embeds import build_report_embed
from modledger.constants import PLATFORM_TIMEOUT_SECONDS
from modledger.engine.events import (
    HistoricalMessage,
    HistoryPage,
    InviteInfo,
    MemberIdentity,
    MemberInfo,
)
from modledger.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def identity_of(user: discord.abc.User) -> MemberIdentity:
    """Username + avatar hash, as stored on the ledger record."""
    return MemberIdentity(
        username=user.name,
        avatar=user.avatar.key if user.avatar else None,
    )


def member_info(member: discord.Member) -> MemberInfo:
    return MemberInfo(
        account_id=member.id,
        identity=identity_of(member),
        role_ids=frozenset(role.id for role in member.roles),
        is_bot=member.bot,
    )


class DiscordPlatform:
    """:class:`~modledger.engine.platform.ChatPlatform` over a discord.py client."""

    def __init__(
        self,
        client: discord.Client,
        *,
        timeout: float = PLATFORM_TIMEOUT_SECONDS,
    ) -> None:
        self.client = client
        self.timeout = timeout

    async def _call(self, awaitable: Awaitable[T], what: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except TimeoutError:
            raise UpstreamUnavailableError(f"{what} timed out after {self.timeout:.0f}s") from None
        except discord.NotFound:
            raise
        except discord.HTTPException as exc:
            raise UpstreamUnavailableError(f"{what} failed: {exc}") from exc

    def guild_ids(self) -> list[int]:
        return [g.id for g in self.client.guilds]

    async def _guild(self, guild_id: int) -> discord.Guild:
        guild = self.client.get_guild(guild_id)
        if guild is not None:
            return guild
        try:
            return await self._call(self.client.fetch_guild(guild_id), f"Fetching guild {guild_id}")
        except discord.NotFound:
            raise UpstreamUnavailableError(f"Guild {guild_id} not found") from None

    async def _messageable(self, channel_id: int) -> discord.abc.Messageable:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self._call(
                    self.client.fetch_channel(channel_id), f"Fetching channel {channel_id}",
                )
            except discord.NotFound:
                raise UpstreamUnavailableError(f"Channel {channel_id} not found") from None
        if not isinstance(channel, discord.abc.Messageable):
            raise UpstreamUnavailableError(f"Channel {channel_id} is not a text channel")
        return channel

    # -------------------------------------------------------------------
    # ChatPlatform
    # -------------------------------------------------------------------
    async def get_member(self, guild_id: int, account_id: int) -> MemberInfo | None:
        guild = await self._guild(guild_id)
        member = guild.get_member(account_id)
        if member is None:
            try:
                member = await self._call(
                    guild.fetch_member(account_id), f"Fetching member {account_id}",
                )
            except discord.NotFound:
                return None
        return member_info(member)

    async def has_role(self, guild_id: int, account_id: int, role_id: int) -> bool:
        member = await self.get_member(guild_id, account_id)
        return member is not None and role_id in member.role_ids

    async def list_invites(self, guild_id: int) -> list[InviteInfo]:
        guild = await self._guild(guild_id)
        try:
            invites = await self._call(guild.invites(), f"Listing invites of guild {guild_id}")
        except discord.NotFound:
            raise UpstreamUnavailableError(f"Guild {guild_id} not found") from None
        return [
            InviteInfo(
                code=inv.code,
                uses=inv.uses or 0,
                inviter_id=inv.inviter.id if inv.inviter else None,
            )
            for inv in invites
        ]

    async def fetch_message_history(
        self, channel_id: int, *, before: int | None, limit: int,
    ) -> HistoryPage:
        channel = await self._messageable(channel_id)

        async def _collect() -> list[discord.Message]:
            cursor = discord.Object(id=before) if before is not None else None
            return [m async for m in channel.history(limit=limit, before=cursor)]

        try:
            raw = await self._call(_collect(), f"Reading history of channel {channel_id}")
        except discord.NotFound:
            raise UpstreamUnavailableError(f"Channel {channel_id} not found") from None

        messages = [
            HistoricalMessage(
                message_id=m.id,
                account_id=m.author.id,
                guild_id=m.guild.id if m.guild else None,
                timestamp=m.created_at,
                is_bot=m.author.bot,
            )
            for m in raw
        ]
        next_before = messages[-1].message_id if len(messages) == limit else None
        return HistoryPage(messages=messages, before=next_before)

    async def ensure_channel(self, channel_id: int) -> None:
        await self._messageable(channel_id)

    async def send_report(self, channel_id: int, title: str, text: str) -> None:
        channel = await self._messageable(channel_id)
        try:
            await self._call(
                channel.send(embed=build_report_embed(title, text)),
                f"Posting report to channel {channel_id}",
            )
        except discord.NotFound:
            raise UpstreamUnavailableError(f"Channel {channel_id} not found") from None
