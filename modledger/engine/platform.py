"""
modledger.engine.platform — Chat Platform Boundary
===================================================

The only view of Discord the core services get.  The production
implementation is :class:`modledger.bot.platform.DiscordPlatform`; tests
plug in an in-memory fake.

Every method may raise
:class:`~modledger.errors.UpstreamUnavailableError` when the platform
can't be reached or the request times out.
"""

from __future__ import annotations

from typing import Protocol

from modledger.engine.events import HistoryPage, InviteInfo, MemberInfo


class ChatPlatform(Protocol):
    def guild_ids(self) -> list[int]:
        """Guilds the bot is currently in."""
        ...

    async def get_member(self, guild_id: int, account_id: int) -> MemberInfo | None:
        """Current member state, or ``None`` if the account isn't a member."""
        ...

    async def has_role(self, guild_id: int, account_id: int, role_id: int) -> bool:
        ...

    async def list_invites(self, guild_id: int) -> list[InviteInfo]:
        ...

    async def fetch_message_history(
        self, channel_id: int, *, before: int | None, limit: int,
    ) -> HistoryPage:
        """Up to *limit* messages older than message id *before*, newest first."""
        ...

    async def ensure_channel(self, channel_id: int) -> None:
        """Raise unless *channel_id* resolves to a channel messages can be posted in."""
        ...

    async def send_report(self, channel_id: int, title: str, text: str) -> None:
        ...
