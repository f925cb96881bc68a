"""
modledger.services.settings_service — Settings CRUD & Read-Through Accessor
=============================================================================

Provides typed read/write access to the ``settings`` table.

Nothing is cached: admins can change the tracked channel or moderator role
at any time, and the very next event must see the change.  Services take a
:class:`SettingsAccessor` instead of reading settings themselves, so tests
can hand in a different configuration per case.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from modledger.constants import (
    DEFAULT_POINTS_PER_1000_MSG,
    DEFAULT_POINTS_PER_INVITE,
    MODERATOR_ROLE_ID,
    POINTS_PER_1000_MSG,
    POINTS_PER_INVITE,
    RATE_KEYS,
    SETTING_KEYS,
    SNOWFLAKE_KEYS,
    TRACKED_CHANNEL_ID,
)
from modledger.database.models import Setting
from modledger.engine.points import PointRates
from modledger.errors import ConfigurationMissingError, ValidationError

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 100


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_setting(engine: Engine, key: str) -> str | None:
    """Fetch a single setting's raw value, or ``None`` when absent."""
    with Session(engine) as session:
        row = session.get(Setting, key)
        return row.value if row is not None else None


def get_all_settings(engine: Engine) -> list[Setting]:
    """Fetch every setting row, ordered by key."""
    with Session(engine) as session:
        rows = session.scalars(select(Setting).order_by(Setting.key)).all()
        for r in rows:
            session.expunge(r)
        return list(rows)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_setting(key: str, value: object) -> str:
    """Return the normalized string value for *key*, or raise
    :class:`ValidationError`.

    Snowflake keys must be positive integers, rate keys non-negative
    integers.  Unknown keys are accepted as free text.
    """
    key = (key or "").strip()
    if not key:
        raise ValidationError("Setting key must not be empty", field="key")
    if len(key) > MAX_KEY_LENGTH:
        raise ValidationError(
            f"Setting key is longer than {MAX_KEY_LENGTH} characters", field="key",
        )
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Invalid value for '{key}'", field="value")

    text = str(value).strip()
    if key not in SETTING_KEYS:
        logger.debug("Storing unrecognized setting key %r as free text", key)
    if key in SNOWFLAKE_KEYS:
        if not text.isdigit() or int(text) <= 0:
            raise ValidationError(f"'{key}' must be a Discord ID", field="value")
        return str(int(text))
    if key in RATE_KEYS:
        try:
            number = int(text)
        except ValueError:
            raise ValidationError(f"'{key}' must be an integer", field="value") from None
        if number < 0:
            raise ValidationError(f"'{key}' must not be negative", field="value")
        return str(number)
    return text


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def upsert_setting(
    engine: Engine,
    *,
    key: str,
    value: object,
    description: str | None = None,
) -> Setting:
    """Validate, then insert or update a single setting."""
    normalized = validate_setting(key, value)
    key = key.strip()
    with Session(engine, expire_on_commit=False) as session:
        existing = session.get(Setting, key)
        if existing is not None:
            existing.value = normalized
            if description is not None:
                existing.description = description
        else:
            existing = Setting(key=key, value=normalized, description=description)
            session.add(existing)
        session.commit()
        session.refresh(existing)
        session.expunge(existing)

    logger.info("Setting updated: %s=%s", key, normalized)
    return existing


# ---------------------------------------------------------------------------
# Read-through accessor
# ---------------------------------------------------------------------------

class SettingsAccessor:
    """Typed, uncached view of the ``settings`` table.

    Every call hits the database.  All methods are synchronous; call them
    through :func:`~modledger.database.engine.run_db` from async code.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def get(self, key: str, default: str | None = None) -> str | None:
        value = get_setting(self._engine, key)
        return default if value is None or value == "" else value

    def get_int(self, key: str, default: int = 0) -> int:
        val = self.get(key)
        if val is None:
            return default
        try:
            return int(val)
        except (TypeError, ValueError):
            logger.warning("Setting %s holds non-integer %r; using %d", key, val, default)
            return default

    def get_id(self, key: str) -> int | None:
        """Snowflake setting as ``int``, or ``None`` when unset/invalid."""
        val = self.get(key)
        if val is None:
            return None
        try:
            return int(val)
        except (TypeError, ValueError):
            logger.warning("Setting %s holds invalid ID %r", key, val)
            return None

    def require_id(self, key: str) -> int:
        value = self.get_id(key)
        if value is None:
            raise ConfigurationMissingError(key)
        return value

    def tracked_channel_id(self) -> int | None:
        return self.get_id(TRACKED_CHANNEL_ID)

    def moderator_role_id(self) -> int | None:
        return self.get_id(MODERATOR_ROLE_ID)

    def point_rates(self) -> PointRates:
        return PointRates(
            per_1000_messages=self.get_int(POINTS_PER_1000_MSG, DEFAULT_POINTS_PER_1000_MSG),
            per_invite=self.get_int(POINTS_PER_INVITE, DEFAULT_POINTS_PER_INVITE),
        )
