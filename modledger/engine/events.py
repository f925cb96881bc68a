"""
modledger.engine.events — Event Envelopes
==========================================

Every platform event is normalized into one of these dataclasses before
the services see it, so the core never touches ``discord.Message`` or
``discord.Member`` directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from modledger.constants import utcnow

__all__ = [
    "HistoricalMessage",
    "HistoryPage",
    "InviteInfo",
    "MemberIdentity",
    "MemberInfo",
    "MessageEvent",
]


@dataclass(frozen=True, slots=True)
class MemberIdentity:
    """Display fields refreshed opportunistically on every observed event."""

    username: str
    avatar: str | None = None


@dataclass(frozen=True, slots=True)
class MemberInfo:
    """A guild member as seen by the platform right now."""

    account_id: int
    identity: MemberIdentity
    role_ids: frozenset[int] = frozenset()
    is_bot: bool = False


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """A live message.

    ``role_ids`` carries the author's roles at the time of the event when
    the platform delivered them; ``None`` means "ask the platform".
    """

    account_id: int
    channel_id: int
    guild_id: int | None
    identity: MemberIdentity
    is_bot: bool = False
    role_ids: frozenset[int] | None = None
    timestamp: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class HistoricalMessage:
    """One message from a backward history walk."""

    message_id: int
    account_id: int
    guild_id: int | None
    timestamp: datetime
    is_bot: bool = False


@dataclass(frozen=True, slots=True)
class HistoryPage:
    """A page of history, newest first.  ``before`` pages further back."""

    messages: list[HistoricalMessage]
    before: int | None = None


@dataclass(frozen=True, slots=True)
class InviteInfo:
    """An invite as listed by the platform."""

    code: str
    uses: int
    inviter_id: int | None = None
