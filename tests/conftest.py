"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from modledger.constants import MODERATOR_ROLE_ID, TRACKED_CHANNEL_ID
from modledger.database.models import Base
from modledger.engine.events import (
    HistoricalMessage,
    HistoryPage,
    InviteInfo,
    MemberIdentity,
    MemberInfo,
)
from modledger.errors import UpstreamUnavailableError
from modledger.services.settings_service import SettingsAccessor, upsert_setting

GUILD_ID = 1
CHANNEL_ID = 100
ROLE_ID = 200


# ---------------------------------------------------------------------------
# Fake chat platform
# ---------------------------------------------------------------------------
class FakePlatform:
    """In-memory :class:`~modledger.engine.platform.ChatPlatform`.

    ``history`` is newest-first, like Discord's.  Put an operation name in
    ``fail`` to make it raise :class:`UpstreamUnavailableError`.
    """

    def __init__(self) -> None:
        self.guilds: list[int] = [GUILD_ID]
        self.members: dict[int, MemberInfo] = {}
        self.invites: dict[int, list[InviteInfo]] = {}
        self.history: list[HistoricalMessage] = []
        self.reports: list[tuple[int, str, str]] = []
        self.fail: set[str] = set()
        self.history_fail_after: int | None = None
        self.history_calls: list[tuple[int | None, int]] = []
        self.role_checks = 0

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail:
            raise UpstreamUnavailableError(f"{op} unavailable")

    # -- test helpers --------------------------------------------------------
    def add_member(self, account_id: int, *role_ids: int, username: str | None = None) -> MemberInfo:
        info = MemberInfo(
            account_id=account_id,
            identity=MemberIdentity(username=username or f"user{account_id}"),
            role_ids=frozenset(role_ids),
        )
        self.members[account_id] = info
        return info

    def set_invites(self, *entries: tuple[str, int, int | None], guild_id: int = GUILD_ID) -> None:
        self.invites[guild_id] = [
            InviteInfo(code=code, uses=uses, inviter_id=inviter) for code, uses, inviter in entries
        ]

    def post(self, message_id: int, account_id: int, timestamp: datetime, *, is_bot: bool = False) -> None:
        """Append an *older* message to the history."""
        self.history.append(HistoricalMessage(
            message_id=message_id,
            account_id=account_id,
            guild_id=GUILD_ID,
            timestamp=timestamp,
            is_bot=is_bot,
        ))

    # -- ChatPlatform --------------------------------------------------------
    def guild_ids(self) -> list[int]:
        return list(self.guilds)

    async def get_member(self, guild_id: int, account_id: int) -> MemberInfo | None:
        self._maybe_fail("get_member")
        return self.members.get(account_id)

    async def has_role(self, guild_id: int, account_id: int, role_id: int) -> bool:
        self.role_checks += 1
        self._maybe_fail("has_role")
        member = self.members.get(account_id)
        return member is not None and role_id in member.role_ids

    async def list_invites(self, guild_id: int) -> list[InviteInfo]:
        self._maybe_fail("list_invites")
        return list(self.invites.get(guild_id, []))

    async def fetch_message_history(
        self, channel_id: int, *, before: int | None, limit: int,
    ) -> HistoryPage:
        if self.history_fail_after is not None and len(self.history_calls) >= self.history_fail_after:
            raise UpstreamUnavailableError("history unavailable")
        self.history_calls.append((before, limit))
        start = 0
        if before is not None:
            ids = [m.message_id for m in self.history]
            start = ids.index(before) + 1
        page = self.history[start:start + limit]
        next_before = page[-1].message_id if len(page) == limit else None
        return HistoryPage(messages=page, before=next_before)

    async def ensure_channel(self, channel_id: int) -> None:
        self._maybe_fail("ensure_channel")

    async def send_report(self, channel_id: int, title: str, text: str) -> None:
        self._maybe_fail("send_report")
        self.reports.append((channel_id, title, text))


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all ModLedger tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def settings(db_engine: Engine) -> SettingsAccessor:
    return SettingsAccessor(db_engine)


@pytest.fixture
def configured(db_engine: Engine) -> SettingsAccessor:
    """Settings with the tracked channel and moderator role set."""
    upsert_setting(db_engine, key=TRACKED_CHANNEL_ID, value=CHANNEL_ID)
    upsert_setting(db_engine, key=MODERATOR_ROLE_ID, value=ROLE_ID)
    return SettingsAccessor(db_engine)


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
@pytest.fixture
def client(db_engine: Engine):
    """FastAPI TestClient bound to the in-memory engine."""
    from fastapi.testclient import TestClient

    from modledger.api.deps import get_engine
    from modledger.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
