"""
modledger.engine.points — Derived Total & Ranking
==================================================

THE single canonical implementation of the point formula::

    floor(message_count / 1000) * points_per_1000_msg
      + invite_count * points_per_invite
      + leaderboard_points
      + manual_points

The dashboard list, ``/stats``, ``/balance`` and the leaderboard all call
into this module.  Never re-implement the formula elsewhere.

Pure calculation — no Discord I/O, no DB I/O.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar

from modledger.constants import (
    DEFAULT_POINTS_PER_1000_MSG,
    DEFAULT_POINTS_PER_INVITE,
    LEADERBOARD_REWARDS,
)

__all__ = [
    "LedgerRecord",
    "PointBreakdown",
    "PointRates",
    "compute_breakdown",
    "compute_total",
    "rank_by_messages",
    "reward_for_rank",
]

MESSAGES_PER_POINT_BLOCK = 1000


class LedgerRecord(Protocol):
    """Anything carrying the four point-bearing counters."""

    message_count: int
    invite_count: int
    leaderboard_points: int
    manual_points: int


class RankableRecord(Protocol):
    message_count: int
    is_ignored: bool


R = TypeVar("R", bound=RankableRecord)


@dataclass(frozen=True, slots=True)
class PointRates:
    """Point conversion rates, read from the ``settings`` table."""

    per_1000_messages: int = DEFAULT_POINTS_PER_1000_MSG
    per_invite: int = DEFAULT_POINTS_PER_INVITE


@dataclass(frozen=True, slots=True)
class PointBreakdown:
    message_points: int
    invite_points: int
    leaderboard_points: int
    manual_points: int

    @property
    def total(self) -> int:
        return (
            self.message_points
            + self.invite_points
            + self.leaderboard_points
            + self.manual_points
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "message_points": self.message_points,
            "invite_points": self.invite_points,
            "leaderboard_points": self.leaderboard_points,
            "manual_points": self.manual_points,
            "total_points": self.total,
        }


def compute_breakdown(record: LedgerRecord, rates: PointRates) -> PointBreakdown:
    """Split a record's balance into its four components."""
    return PointBreakdown(
        message_points=(record.message_count // MESSAGES_PER_POINT_BLOCK)
        * rates.per_1000_messages,
        invite_points=record.invite_count * rates.per_invite,
        leaderboard_points=record.leaderboard_points,
        manual_points=record.manual_points,
    )


def compute_total(record: LedgerRecord, rates: PointRates) -> int:
    """Return the derived point balance of *record*."""
    return compute_breakdown(record, rates).total


# ---------------------------------------------------------------------------
# Leaderboard ranking
# ---------------------------------------------------------------------------
def rank_by_messages(records: Iterable[R]) -> list[R]:
    """Non-ignored records ordered by ``message_count`` descending.

    ``sorted`` is stable, so ties keep their input order.
    """
    active = [r for r in records if not r.is_ignored]
    return sorted(active, key=lambda r: r.message_count, reverse=True)


def reward_for_rank(rank: int, rewards: Sequence[int] = LEADERBOARD_REWARDS) -> int:
    """Bonus for a 1-based *rank*; zero outside the rewarded cohort."""
    if 1 <= rank <= len(rewards):
        return rewards[rank - 1]
    return 0
