"""
tests/test_tracking_service.py — Live Message Gating
=====================================================
"""

from __future__ import annotations

import asyncio

from conftest import CHANNEL_ID, GUILD_ID, ROLE_ID

from modledger.constants import TRACKED_CHANNEL_ID
from modledger.engine.events import MemberIdentity, MessageEvent
from modledger.services import ledger_service
from modledger.services.settings_service import upsert_setting
from modledger.services.tracking_service import handle_message

MOD = 301


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


def _event(**overrides) -> MessageEvent:
    fields = {
        "account_id": MOD,
        "channel_id": CHANNEL_ID,
        "guild_id": GUILD_ID,
        "identity": MemberIdentity("mod"),
        "role_ids": frozenset({ROLE_ID}),
    }
    fields.update(overrides)
    return MessageEvent(**fields)


class TestHandleMessage:
    def test_counts_moderator_in_tracked_channel(self, db_engine, configured, platform):
        mod = run_async(handle_message(db_engine, configured, platform, _event()))
        assert mod is not None
        assert mod.message_count == 1
        assert mod.username == "mod"

    def test_other_channel_ignored(self, db_engine, configured, platform):
        result = run_async(handle_message(
            db_engine, configured, platform, _event(channel_id=CHANNEL_ID + 1),
        ))
        assert result is None
        assert ledger_service.list_moderators(db_engine) == []

    def test_bot_and_dm_ignored(self, db_engine, configured, platform):
        assert run_async(handle_message(db_engine, configured, platform, _event(is_bot=True))) is None
        assert run_async(handle_message(db_engine, configured, platform, _event(guild_id=None))) is None
        assert ledger_service.list_moderators(db_engine) == []

    def test_author_without_role_ignored(self, db_engine, configured, platform):
        result = run_async(handle_message(
            db_engine, configured, platform, _event(role_ids=frozenset({999})),
        ))
        assert result is None

    def test_role_looked_up_when_not_delivered(self, db_engine, configured, platform):
        platform.add_member(MOD, ROLE_ID)
        mod = run_async(handle_message(db_engine, configured, platform, _event(role_ids=None)))
        assert mod.message_count == 1
        assert platform.role_checks == 1

    def test_unconfigured_counts_nothing(self, db_engine, settings, platform):
        assert run_async(handle_message(db_engine, settings, platform, _event())) is None
        assert ledger_service.list_moderators(db_engine) == []

    def test_channel_change_takes_effect_immediately(self, db_engine, configured, platform):
        upsert_setting(db_engine, key=TRACKED_CHANNEL_ID, value=CHANNEL_ID + 1)
        assert run_async(handle_message(db_engine, configured, platform, _event())) is None
        mod = run_async(handle_message(
            db_engine, configured, platform, _event(channel_id=CHANNEL_ID + 1),
        ))
        assert mod.message_count == 1

    def test_excluded_moderator_not_counted(self, db_engine, configured, platform):
        ledger_service.set_ignored(db_engine, MOD, True)
        assert run_async(handle_message(db_engine, configured, platform, _event())) is None
        assert ledger_service.get_moderator_by_account(db_engine, MOD).message_count == 0
