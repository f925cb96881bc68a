"""
modledger.services.tracking_service — Live Message Gating
==========================================================

Decides whether a live message counts and, if so, forwards it to the
ledger.

Gates (all re-read per event — admins may reconfigure tracking live):
1. not a bot, inside a guild
2. a tracked channel is configured and the message is in it
3. a moderator role is configured and the author holds it

Rejected messages are dropped silently; they are not errors.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from modledger.database.engine import run_db
from modledger.services import ledger_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from modledger.database.models import Moderator
    from modledger.engine.events import MessageEvent
    from modledger.engine.platform import ChatPlatform
    from modledger.services.settings_service import SettingsAccessor

logger = logging.getLogger(__name__)


async def author_is_moderator(
    platform: ChatPlatform,
    guild_id: int,
    account_id: int,
    role_id: int,
    role_ids: frozenset[int] | None = None,
) -> bool:
    """Role check that prefers roles delivered with the event."""
    if role_ids is not None:
        return role_id in role_ids
    return await platform.has_role(guild_id, account_id, role_id)


async def handle_message(
    engine: Engine,
    settings: SettingsAccessor,
    platform: ChatPlatform,
    event: MessageEvent,
) -> Moderator | None:
    """Apply one live message to the ledger if it passes every gate.

    Returns the updated record when the message was counted, else ``None``.
    Platform errors propagate; the calling cog logs and drops the event.
    """
    if event.is_bot or event.guild_id is None:
        return None

    tracked_channel_id = await run_db(settings.tracked_channel_id)
    if tracked_channel_id is None or event.channel_id != tracked_channel_id:
        return None

    role_id = await run_db(settings.moderator_role_id)
    if role_id is None:
        logger.debug("Message in tracked channel ignored: moderator role not configured")
        return None

    if not await author_is_moderator(
        platform, event.guild_id, event.account_id, role_id, event.role_ids,
    ):
        return None

    moderator, applied = await run_db(
        ledger_service.apply_message_event,
        engine,
        event.account_id,
        event.identity,
    )
    if not applied:
        logger.debug("Message from excluded moderator %s not counted", moderator.username)
        return None

    logger.debug(
        "Message counted: %s → %d messages", moderator.username, moderator.message_count,
    )
    return moderator
