"""
modledger.services.recovery_service — Startup Catch-Up of Missed Messages
===========================================================================

Runs once when the bot comes online and backfills tracked-channel messages
that were posted while it was offline.

How it works:
    1. Read the tracked channel and moderator role; no-op if either is
       unset.
    2. Snapshot ``last_updated`` for every non-ignored record.  The
       earliest one is the cutoff; with no active records there is
       nothing to recover against.
    3. Walk the channel history backward from now, ``page_size`` at a
       time, inspecting at most ``max_messages`` messages.
    4. Stop the whole walk at the first message older than the cutoff.
       Newer messages count for their author if the author holds the
       moderator role, has a non-ignored record, and the message is
       strictly newer than that record's snapshotted ``last_updated``.

The per-record comparison is the guard against double counting: records
were last touched at different times, so the global cutoff alone would
re-count some authors and skip others.  Comparisons use the snapshot
taken in step 2, not the live value, because crediting a message stamps
``last_updated`` and would otherwise hide every older missed message.

Recovery is additive and best-effort: a platform failure aborts the rest
of the walk, keeps what was already credited, and is logged — it never
fails startup.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from modledger.constants import (
    RECOVERY_MAX_MESSAGES,
    RECOVERY_PAGE_SIZE,
    as_utc,
    utcnow,
)
from modledger.database.engine import run_db
from modledger.errors import UpstreamUnavailableError
from modledger.services import ledger_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from modledger.engine.events import HistoricalMessage
    from modledger.engine.platform import ChatPlatform
    from modledger.services.settings_service import SettingsAccessor

logger = logging.getLogger(__name__)


@dataclass
class RecoveryResult:
    """Outcome of one recovery run."""

    inspected: int = 0
    credited: int = 0
    credited_by_account: Counter[int] = field(default_factory=Counter)
    skipped_reason: str | None = None
    aborted_reason: str | None = None
    reached_cutoff: bool = False


def load_recovery_baseline(engine: Engine) -> dict[int, datetime]:
    """``account_id → last_updated`` (UTC) for every non-ignored record."""
    return {
        m.discord_id: as_utc(m.last_updated)
        for m in ledger_service.list_moderators(engine)
        if not m.is_ignored
    }


async def recover_missed_messages(
    engine: Engine,
    settings: SettingsAccessor,
    platform: ChatPlatform,
    *,
    page_size: int = RECOVERY_PAGE_SIZE,
    max_messages: int = RECOVERY_MAX_MESSAGES,
) -> RecoveryResult:
    """Backfill messages missed while offline.  Never raises for platform
    failures; see module docstring."""
    result = RecoveryResult()
    logger.info("Starting message recovery for missed activity…")

    channel_id = await run_db(settings.tracked_channel_id)
    role_id = await run_db(settings.moderator_role_id)
    if channel_id is None or role_id is None:
        result.skipped_reason = "tracked channel or moderator role not configured"
        logger.info("Recovery skipped: %s", result.skipped_reason)
        return result

    baseline = await run_db(load_recovery_baseline, engine)
    if not baseline:
        result.skipped_reason = "no active moderator records"
        logger.info("Recovery skipped: %s", result.skipped_reason)
        return result

    cutoff = min(baseline.values())
    scan_started = utcnow()
    role_checks: dict[int, bool] = {}
    before: int | None = None

    try:
        while result.inspected < max_messages:
            limit = min(page_size, max_messages - result.inspected)
            page = await platform.fetch_message_history(channel_id, before=before, limit=limit)
            if not page.messages:
                break

            for message in page.messages:
                result.inspected += 1
                if message.is_bot or message.guild_id is None:
                    continue

                timestamp = as_utc(message.timestamp)
                if timestamp < cutoff:
                    result.reached_cutoff = True
                    break
                if timestamp > scan_started:
                    # Arrived after we came online; the live path counts it.
                    continue

                if await _credit(
                    engine, platform, message, timestamp, role_id, baseline, role_checks,
                ):
                    result.credited += 1
                    result.credited_by_account[message.account_id] += 1

                if result.inspected >= max_messages:
                    break

            if result.reached_cutoff or page.before is None:
                break
            before = page.before
    except UpstreamUnavailableError as exc:
        result.aborted_reason = str(exc)
        logger.warning(
            "Recovery aborted after %d messages (%d credited): %s",
            result.inspected, result.credited, exc,
        )
        return result

    logger.info(
        "Message recovery complete: inspected=%d credited=%d accounts=%d",
        result.inspected, result.credited, len(result.credited_by_account),
    )
    return result


async def _credit(
    engine: Engine,
    platform: ChatPlatform,
    message: HistoricalMessage,
    timestamp: datetime,
    role_id: int,
    baseline: dict[int, datetime],
    role_checks: dict[int, bool],
) -> bool:
    last_updated = baseline.get(message.account_id)
    if last_updated is None or timestamp <= last_updated:
        return False

    is_moderator = role_checks.get(message.account_id)
    if is_moderator is None:
        is_moderator = await platform.has_role(message.guild_id, message.account_id, role_id)
        role_checks[message.account_id] = is_moderator
    if not is_moderator:
        return False

    return await run_db(ledger_service.increment_recovered_message, engine, message.account_id)
