"""
modledger.api.deps — FastAPI dependency injection
===================================================
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Request
from sqlalchemy import Engine

from modledger.config import ModLedgerConfig, load_config
from modledger.database.engine import create_db_engine
from modledger.errors import UpstreamUnavailableError
from modledger.services.settings_service import SettingsAccessor

if TYPE_CHECKING:
    from modledger.bot.core import ModLedgerBot


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> ModLedgerConfig:
    return load_config()


def get_settings(engine: Annotated[Engine, Depends(get_engine)]) -> SettingsAccessor:
    return SettingsAccessor(engine)


def get_bot(request: Request) -> ModLedgerBot:
    """The bot started by the app lifespan.  503 until it is connected."""
    bot = getattr(request.app.state, "bot", None)
    if bot is None or not bot.is_ready():
        raise UpstreamUnavailableError("Discord bot is not connected")
    return bot
