"""
modledger.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- moderators — one row per tracked Discord account (the point ledger)
- settings   — admin-configurable key/value store

No other durable state exists; the invite snapshot cache lives in memory.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all ModLedger ORM models."""


# ---------------------------------------------------------------------------
# Moderators — the point ledger
# ---------------------------------------------------------------------------
class Moderator(Base):
    """Point-bearing record for one Discord account.

    ``message_count`` and ``invite_count`` only ever grow.  The point total
    is derived on read by :func:`modledger.engine.points.compute_total` and
    is never stored.
    """
    __tablename__ = "moderators"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar: Mapped[str | None] = mapped_column(String(100), default=None)
    is_ignored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    invite_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    leaderboard_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    manual_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_moderators_message_count", "message_count"),
    )

    def __repr__(self) -> str:
        return (
            f"<Moderator id={self.id} discord_id={self.discord_id} "
            f"name={self.username!r} ignored={self.is_ignored}>"
        )


# ---------------------------------------------------------------------------
# Setting — admin-configurable key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Values are plain strings (role/channel snowflakes, integer rates).
    Typed reads go through
    :class:`~modledger.services.settings_service.SettingsAccessor`.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Setting {self.key}={self.value!r}>"
