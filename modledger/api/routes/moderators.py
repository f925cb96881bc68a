"""
modledger.api.routes.moderators — Ledger records for the dashboard
====================================================================

Every response carries the point breakdown computed with the *current*
rates, so the dashboard never re-implements the formula.  Discord ids are
rendered as strings (snowflakes exceed the JS safe-integer range).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from modledger.api.deps import get_engine, get_settings
from modledger.database.models import Moderator
from modledger.engine.points import PointRates, compute_breakdown
from modledger.services import ledger_service
from modledger.services.settings_service import SettingsAccessor

router = APIRouter(prefix="/moderators", tags=["moderators"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ManualPointsBody(BaseModel):
    points: int = Field(strict=True)
    reason: str | None = Field(default=None, max_length=500)


def serialize_moderator(m: Moderator, rates: PointRates) -> dict:
    return {
        "id": m.id,
        "discord_id": str(m.discord_id),
        "username": m.username,
        "avatar": m.avatar,
        "is_ignored": m.is_ignored,
        "message_count": m.message_count,
        "invite_count": m.invite_count,
        "last_updated": m.last_updated.isoformat() if m.last_updated else None,
        **compute_breakdown(m, rates).to_dict(),
    }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
@router.get("")
def list_moderators(
    engine=Depends(get_engine),
    settings: SettingsAccessor = Depends(get_settings),
):
    """All records, highest total first, plus dashboard summary figures."""
    rates = settings.point_rates()
    rows = [serialize_moderator(m, rates) for m in ledger_service.list_moderators(engine)]
    rows.sort(key=lambda r: r["total_points"], reverse=True)
    active = [r for r in rows if not r["is_ignored"]]
    return {
        "moderators": rows,
        "summary": {
            "total_moderators": len(active),
            "total_messages": sum(r["message_count"] for r in active),
            "total_invites": sum(r["invite_count"] for r in active),
        },
    }


@router.get("/{moderator_id}")
def get_moderator(
    moderator_id: int,
    engine=Depends(get_engine),
    settings: SettingsAccessor = Depends(get_settings),
):
    moderator = ledger_service.require_moderator(engine, moderator_id)
    return serialize_moderator(moderator, settings.point_rates())


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
@router.post("/{moderator_id}/manual-points")
def add_manual_points(
    moderator_id: int,
    body: ManualPointsBody,
    engine=Depends(get_engine),
    settings: SettingsAccessor = Depends(get_settings),
):
    """Signed adjustment; applies to excluded moderators too."""
    moderator = ledger_service.grant_manual_points_by_id(
        engine, moderator_id, body.points, body.reason or "",
    )
    return serialize_moderator(moderator, settings.point_rates())


@router.post("/{moderator_id}/toggle-ignore")
def toggle_ignore(
    moderator_id: int,
    engine=Depends(get_engine),
    settings: SettingsAccessor = Depends(get_settings),
):
    moderator = ledger_service.toggle_ignored(engine, moderator_id)
    logger.info(
        "Dashboard: %s is now %s",
        moderator.username, "excluded" if moderator.is_ignored else "tracked",
    )
    return serialize_moderator(moderator, settings.point_rates())
