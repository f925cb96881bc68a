"""
modledger.api.routes.settings — Runtime settings
==================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from modledger.api.deps import get_engine
from modledger.database.models import Setting
from modledger.services import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SettingUpdate(BaseModel):
    key: str = Field(min_length=1, max_length=100)
    value: str | int
    description: str | None = None


def _serialize(row: Setting) -> dict:
    return {
        "key": row.key,
        "value": row.value,
        "description": row.description,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


@router.get("")
def list_settings(engine=Depends(get_engine)):
    rows = settings_service.get_all_settings(engine)
    return {"settings": [_serialize(r) for r in rows]}


@router.post("")
def update_setting(body: SettingUpdate, engine=Depends(get_engine)):
    """Upsert one setting.  Takes effect on the next event; nothing is cached."""
    row = settings_service.upsert_setting(
        engine, key=body.key, value=body.value, description=body.description,
    )
    return _serialize(row)
