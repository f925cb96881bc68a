"""
modledger.api.routes.bot — Bot actions triggered from the dashboard
=====================================================================

Both routes need a connected bot (503 otherwise).  Leaderboard failures
keep their taxonomy: missing tracked channel → 409, Discord down → 503.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from modledger.api.deps import get_bot

router = APIRouter(prefix="/bot", tags=["bot"])
logger = logging.getLogger(__name__)


@router.post("/refresh-cache")
async def refresh_cache(bot=Depends(get_bot)):
    refreshed = await bot.refresh_invite_cache()
    return {"success": True, "message": "Invite cache refreshed", "guilds": refreshed}


@router.post("/leaderboard")
async def generate_leaderboard(bot=Depends(get_bot)):
    report = await bot.generate_leaderboard()
    logger.info("Dashboard triggered leaderboard (%d ranked)", len(report.entries))
    return {
        "success": True,
        "message": "Leaderboard generated and sent",
        "entries": [
            {
                "rank": e.rank,
                "discord_id": str(e.account_id),
                "username": e.username,
                "message_count": e.message_count,
                "reward": e.reward,
            }
            for e in report.entries
        ],
    }
