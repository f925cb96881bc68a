"""
modledger.services.leaderboard_service — Ranking, Bonuses & Report
====================================================================

Ranks non-ignored moderators by raw message count, grants the fixed
40/30/20 bonus to the top three, and posts the ranking to the tracked
channel.

Bonuses go to ``leaderboard_points`` through the ledger's atomic update
and accumulate across runs: running the leaderboard twice grants twice.
That is intended for a manual trigger.  Anything that schedules it
automatically must make sure it runs once per period.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from modledger.constants import (
    DEFAULT_LEADERBOARD_TITLE,
    LEADERBOARD_REWARDS,
    TRACKED_CHANNEL_ID,
)
from modledger.database.engine import run_db
from modledger.engine.points import rank_by_messages, reward_for_rank
from modledger.services import ledger_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from modledger.database.models import Moderator
    from modledger.engine.platform import ChatPlatform
    from modledger.services.settings_service import SettingsAccessor

logger = logging.getLogger(__name__)

EMPTY_LEADERBOARD_TEXT = "No active moderators tracked yet."


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    account_id: int
    username: str
    message_count: int
    reward: int


@dataclass(frozen=True, slots=True)
class LeaderboardReport:
    title: str
    entries: list[LeaderboardEntry]
    text: str


def build_entries(
    moderators: Sequence[Moderator],
    rewards: Sequence[int] = LEADERBOARD_REWARDS,
) -> list[LeaderboardEntry]:
    """Rank *moderators* (ignored ones dropped, ties in input order)."""
    return [
        LeaderboardEntry(
            rank=rank,
            account_id=m.discord_id,
            username=m.username,
            message_count=m.message_count,
            reward=reward_for_rank(rank, rewards),
        )
        for rank, m in enumerate(rank_by_messages(moderators), start=1)
    ]


def render_report(entries: Sequence[LeaderboardEntry]) -> str:
    if not entries:
        return EMPTY_LEADERBOARD_TEXT
    lines = []
    for e in entries:
        line = f"**#{e.rank}** <@{e.account_id}> - {e.message_count} msgs"
        if e.reward:
            line += f" (+{e.reward} pts)"
        lines.append(line)
    return "\n".join(lines)


def apply_rewards(engine: Engine, entries: Sequence[LeaderboardEntry]) -> int:
    """Grant each rewarded entry its bonus.  Returns points granted."""
    granted = 0
    for e in entries:
        if e.reward and ledger_service.grant_leaderboard_points(engine, e.account_id, e.reward):
            granted += e.reward
    return granted


async def generate_leaderboard(
    engine: Engine,
    settings: SettingsAccessor,
    platform: ChatPlatform,
    *,
    title: str = DEFAULT_LEADERBOARD_TITLE,
) -> LeaderboardReport:
    """Rank, grant bonuses, and post the report to the tracked channel.

    Raises
    ------
    ConfigurationMissingError
        No tracked channel is configured (nothing is granted).
    UpstreamUnavailableError
        The tracked channel can't be resolved (nothing is granted), or
        the report couldn't be posted after that.  Bonuses already
        granted are kept in the second case.
    """
    channel_id = await run_db(settings.require_id, TRACKED_CHANNEL_ID)
    await platform.ensure_channel(channel_id)

    moderators = await run_db(ledger_service.list_moderators, engine)
    entries = build_entries(moderators)
    granted = await run_db(apply_rewards, engine, entries)

    report = LeaderboardReport(title=title, entries=entries, text=render_report(entries))
    await platform.send_report(channel_id, report.title, report.text)

    logger.info(
        "Leaderboard generated: %d ranked, %d bonus points granted",
        len(entries), granted,
    )
    return report
