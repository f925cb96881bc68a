"""
modledger.database.seed — Default Settings Seeder
==================================================

Baseline point rates seeded on first startup so the dashboard shows
real values straight away.  The moderator role and tracked channel are
left unset on purpose: tracking stays off until an admin picks them.

Idempotent — only inserts keys that don't already exist.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from modledger.constants import (
    DEFAULT_POINTS_PER_1000_MSG,
    DEFAULT_POINTS_PER_INVITE,
    POINTS_PER_1000_MSG,
    POINTS_PER_INVITE,
)
from modledger.database.models import Setting

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS: dict[str, tuple[str, str]] = {
    POINTS_PER_1000_MSG: (
        str(DEFAULT_POINTS_PER_1000_MSG), "Points awarded per full 1000 tracked messages",
    ),
    POINTS_PER_INVITE: (
        str(DEFAULT_POINTS_PER_INVITE), "Points awarded per credited invite",
    ),
}


def seed_default_settings(engine: Engine) -> int:
    """Insert any missing default settings.  Returns the number inserted."""
    inserted = 0
    with Session(engine) as session:
        for key, (value, description) in DEFAULT_SETTINGS.items():
            if session.get(Setting, key) is None:
                session.add(Setting(key=key, value=value, description=description))
                inserted += 1
        session.commit()

    if inserted:
        logger.info("Seeded %d default settings", inserted)
    return inserted
