"""
modledger.constants — Shared Constants & Helpers
=================================================

Single source of truth for setting keys, default rates, recovery bounds
and the leaderboard rewards.  Import from here instead of duplicating in
cogs, services, and routes.
"""

from __future__ import annotations

from datetime import UTC, datetime

# ---------------------------------------------------------------------------
# Setting keys (the ``settings`` table)
# ---------------------------------------------------------------------------
MODERATOR_ROLE_ID = "moderator_role_id"
TRACKED_CHANNEL_ID = "tracked_channel_id"
POINTS_PER_1000_MSG = "points_per_1000_msg"
POINTS_PER_INVITE = "points_per_invite"
# Reserved: stored and listed like any key, never read (rewards are fixed).
LEADERBOARD_REWARDS_KEY = "leaderboard_rewards"

SNOWFLAKE_KEYS: frozenset[str] = frozenset({MODERATOR_ROLE_ID, TRACKED_CHANNEL_ID})
RATE_KEYS: frozenset[str] = frozenset({POINTS_PER_1000_MSG, POINTS_PER_INVITE})
SETTING_KEYS: frozenset[str] = SNOWFLAKE_KEYS | RATE_KEYS | {LEADERBOARD_REWARDS_KEY}

DEFAULT_POINTS_PER_1000_MSG = 15
DEFAULT_POINTS_PER_INVITE = 1

# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
LEADERBOARD_REWARDS: tuple[int, ...] = (40, 30, 20)
DEFAULT_LEADERBOARD_TITLE = "\U0001f3c6 Weekly Moderator Leaderboard"

# ---------------------------------------------------------------------------
# Recovery scanner bounds (overridable in config.yaml)
# ---------------------------------------------------------------------------
RECOVERY_PAGE_SIZE = 100
RECOVERY_MAX_MESSAGES = 500

# Upper bound for any single chat-platform request
PLATFORM_TIMEOUT_SECONDS = 10.0


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------
def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime.

    SQLite drops tzinfo on the way back out, so naive values read from the
    database are taken to be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_FORMAT = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
