"""
tests/test_leaderboard_service.py — Ranking, Bonuses & Report
==============================================================
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from conftest import CHANNEL_ID
from sqlalchemy import update
from sqlalchemy.orm import Session

from modledger.bot.platform import DiscordPlatform
from modledger.constants import DEFAULT_LEADERBOARD_TITLE
from modledger.database.models import Moderator
from modledger.errors import ConfigurationMissingError, UpstreamUnavailableError
from modledger.services import ledger_service
from modledger.services.leaderboard_service import (
    EMPTY_LEADERBOARD_TEXT,
    LeaderboardEntry,
    generate_leaderboard,
    render_report,
)


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


def _seed(engine, account_id, messages, *, ignored=False):
    ledger_service.get_or_create(engine, account_id, ignored=ignored)
    with Session(engine) as session:
        session.execute(
            update(Moderator)
            .where(Moderator.discord_id == account_id)
            .values(message_count=messages)
        )
        session.commit()


def _bonus(engine, account_id) -> int:
    return ledger_service.get_moderator_by_account(engine, account_id).leaderboard_points


class TestGenerateLeaderboard:
    def test_ranks_and_rewards(self, db_engine, configured, platform):
        for account_id, messages in [(1, 100), (2, 80), (3, 80), (4, 10)]:
            _seed(db_engine, account_id, messages)

        report = run_async(generate_leaderboard(db_engine, configured, platform))

        assert [(e.rank, e.account_id, e.reward) for e in report.entries] == [
            (1, 1, 40), (2, 2, 30), (3, 3, 20), (4, 4, 0),
        ]
        assert [_bonus(db_engine, a) for a in (1, 2, 3, 4)] == [40, 30, 20, 0]

    def test_report_posted_to_tracked_channel(self, db_engine, configured, platform):
        _seed(db_engine, 1, 100)
        run_async(generate_leaderboard(db_engine, configured, platform))
        assert platform.reports == [
            (CHANNEL_ID, DEFAULT_LEADERBOARD_TITLE, "**#1** <@1> - 100 msgs (+40 pts)"),
        ]

    def test_ignored_excluded(self, db_engine, configured, platform):
        _seed(db_engine, 1, 1000, ignored=True)
        _seed(db_engine, 2, 5)

        report = run_async(generate_leaderboard(db_engine, configured, platform))

        assert [e.account_id for e in report.entries] == [2]
        assert _bonus(db_engine, 1) == 0
        assert _bonus(db_engine, 2) == 40

    def test_reruns_accumulate(self, db_engine, configured, platform):
        _seed(db_engine, 1, 10)
        run_async(generate_leaderboard(db_engine, configured, platform))
        run_async(generate_leaderboard(db_engine, configured, platform))
        assert _bonus(db_engine, 1) == 80

    def test_missing_channel_grants_nothing(self, db_engine, settings, platform):
        _seed(db_engine, 1, 100)
        with pytest.raises(ConfigurationMissingError):
            run_async(generate_leaderboard(db_engine, settings, platform))
        assert _bonus(db_engine, 1) == 0
        assert platform.reports == []

    def test_send_failure_keeps_bonuses(self, db_engine, configured, platform):
        _seed(db_engine, 1, 100)
        platform.fail.add("send_report")
        with pytest.raises(UpstreamUnavailableError):
            run_async(generate_leaderboard(db_engine, configured, platform))
        assert _bonus(db_engine, 1) == 40

    def test_unresolvable_channel_grants_nothing(self, db_engine, configured, platform):
        _seed(db_engine, 1, 100)
        platform.fail.add("ensure_channel")
        with pytest.raises(UpstreamUnavailableError):
            run_async(generate_leaderboard(db_engine, configured, platform))
        assert _bonus(db_engine, 1) == 0
        assert platform.reports == []

    def test_deleted_channel_retries_grant_nothing(self, db_engine, configured):
        _seed(db_engine, 1, 100)
        _seed(db_engine, 2, 50)
        client = MagicMock()
        client.get_channel.return_value = None
        client.fetch_channel = AsyncMock(side_effect=discord.NotFound(
            SimpleNamespace(status=404, reason="Not Found"), "Unknown Channel",
        ))
        discord_platform = DiscordPlatform(client)

        for _ in range(2):
            with pytest.raises(UpstreamUnavailableError):
                run_async(generate_leaderboard(db_engine, configured, discord_platform))

        assert _bonus(db_engine, 1) == 0
        assert _bonus(db_engine, 2) == 0

    def test_empty_ledger(self, db_engine, configured, platform):
        report = run_async(generate_leaderboard(db_engine, configured, platform, title="Week 1"))
        assert report.entries == []
        assert platform.reports == [(CHANNEL_ID, "Week 1", EMPTY_LEADERBOARD_TEXT)]


class TestRenderReport:
    def test_rewarded_and_unrewarded_lines(self):
        text = render_report([
            LeaderboardEntry(rank=1, account_id=10, username="a", message_count=50, reward=40),
            LeaderboardEntry(rank=4, account_id=11, username="b", message_count=5, reward=0),
        ])
        assert text.splitlines() == [
            "**#1** <@10> - 50 msgs (+40 pts)",
            "**#4** <@11> - 5 msgs",
        ]
