"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================

Runs the dashboard API against in-memory SQLite via the ``client``
fixture.  Bot actions use a stand-in bot injected through ``get_bot``.
"""

from __future__ import annotations

import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from modledger.api.deps import get_bot
from modledger.api.main import app
from modledger.constants import POINTS_PER_1000_MSG, TRACKED_CHANNEL_ID
from modledger.database.models import Moderator
from modledger.engine.events import MemberIdentity
from modledger.errors import ConfigurationMissingError
from modledger.services import ledger_service
from modledger.services.leaderboard_service import LeaderboardEntry, LeaderboardReport
from modledger.services.settings_service import upsert_setting


class FakeBot:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.refreshed = 0
        self.leaderboards = 0

    async def refresh_invite_cache(self) -> int:
        self.refreshed += 1
        return 1

    async def generate_leaderboard(self) -> LeaderboardReport:
        if self.error is not None:
            raise self.error
        self.leaderboards += 1
        entry = LeaderboardEntry(rank=1, account_id=42, username="m", message_count=9, reward=40)
        return LeaderboardReport(title="t", entries=[entry], text="")


@pytest.fixture
def moderator(db_engine):
    mod = ledger_service.get_or_create(db_engine, 123456789012345678, MemberIdentity("alice"))
    with Session(db_engine) as session:
        session.execute(
            update(Moderator).where(Moderator.id == mod.id).values(message_count=2500, invite_count=3)
        )
        session.commit()
    return mod


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Moderators
# ===========================================================================
class TestModerators:
    def test_list_includes_breakdown_and_summary(self, client, db_engine, moderator):
        ledger_service.set_ignored(db_engine, 5, True)
        resp = client.get("/api/moderators")
        assert resp.status_code == 200
        data = resp.json()

        first = data["moderators"][0]
        assert first["discord_id"] == "123456789012345678"
        assert first["message_points"] == 30
        assert first["invite_points"] == 3
        assert first["total_points"] == 33
        assert data["summary"] == {
            "total_moderators": 1,
            "total_messages": 2500,
            "total_invites": 3,
        }

    def test_totals_follow_current_rates(self, client, db_engine, moderator):
        upsert_setting(db_engine, key=POINTS_PER_1000_MSG, value=100)
        resp = client.get(f"/api/moderators/{moderator.id}")
        assert resp.status_code == 200
        assert resp.json()["total_points"] == 203

    def test_unknown_moderator_404(self, client):
        resp = client.get("/api/moderators/999")
        assert resp.status_code == 404
        assert "message" in resp.json()

    def test_manual_points_add_then_subtract(self, client, moderator):
        url = f"/api/moderators/{moderator.id}/manual-points"
        assert client.post(url, json={"points": 10, "reason": "event"}).json()["manual_points"] == 10
        resp = client.post(url, json={"points": -15})
        assert resp.status_code == 200
        assert resp.json()["manual_points"] == -5

    @pytest.mark.parametrize("body", [{"points": "ten"}, {"points": 1.5}, {}, {"points": 10**9}])
    def test_manual_points_rejects_bad_body(self, client, moderator, body):
        resp = client.post(f"/api/moderators/{moderator.id}/manual-points", json=body)
        assert resp.status_code == 400
        assert resp.json()["field"] == "points"

    def test_manual_points_unknown_moderator(self, client):
        resp = client.post("/api/moderators/999/manual-points", json={"points": 1})
        assert resp.status_code == 404

    def test_toggle_ignore_keeps_counters(self, client, moderator):
        resp = client.post(f"/api/moderators/{moderator.id}/toggle-ignore")
        assert resp.status_code == 200
        data = resp.json()
        assert data["is_ignored"] is True
        assert data["message_count"] == 2500

        resp = client.post(f"/api/moderators/{moderator.id}/toggle-ignore")
        assert resp.json()["is_ignored"] is False

    def test_toggle_unknown_404(self, client):
        assert client.post("/api/moderators/999/toggle-ignore").status_code == 404


# ===========================================================================
# Settings
# ===========================================================================
class TestSettings:
    def test_upsert_and_list(self, client):
        resp = client.post("/api/settings", json={"key": TRACKED_CHANNEL_ID, "value": 555})
        assert resp.status_code == 200
        assert resp.json()["value"] == "555"

        keys = {s["key"]: s["value"] for s in client.get("/api/settings").json()["settings"]}
        assert keys[TRACKED_CHANNEL_ID] == "555"

    def test_invalid_value_400(self, client):
        resp = client.post("/api/settings", json={"key": TRACKED_CHANNEL_ID, "value": "general"})
        assert resp.status_code == 400
        assert resp.json()["field"] == "value"

    def test_missing_key_400(self, client):
        resp = client.post("/api/settings", json={"value": "1"})
        assert resp.status_code == 400
        assert resp.json()["field"] == "key"


# ===========================================================================
# Bot actions
# ===========================================================================
class TestBotActions:
    @pytest.fixture
    def bot(self):
        fake = FakeBot()
        app.dependency_overrides[get_bot] = lambda: fake
        yield fake
        app.dependency_overrides.pop(get_bot, None)

    def test_refresh_cache(self, client, bot):
        resp = client.post("/api/bot/refresh-cache")
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert bot.refreshed == 1

    def test_leaderboard(self, client, bot):
        resp = client.post("/api/bot/leaderboard")
        assert resp.status_code == 200
        assert resp.json()["entries"][0]["discord_id"] == "42"
        assert bot.leaderboards == 1

    def test_leaderboard_without_channel_409(self, client):
        app.dependency_overrides[get_bot] = lambda: FakeBot(
            ConfigurationMissingError(TRACKED_CHANNEL_ID),
        )
        resp = client.post("/api/bot/leaderboard")
        assert resp.status_code == 409
        assert TRACKED_CHANNEL_ID in resp.json()["message"]

    @pytest.mark.parametrize("path", ["/api/bot/refresh-cache", "/api/bot/leaderboard"])
    def test_bot_offline_503(self, client, path):
        resp = client.post(path)
        assert resp.status_code == 503
