"""
modledger.services.invite_service — Invite Attribution
=======================================================

Works out which invite a new member used and credits its owner.

How it works:
    1. On member join, fetch the guild's current invites (new snapshot).
    2. Diff against the cached snapshot; the invite whose use count rose
       is the one consumed (first match wins).
    3. If its inviter currently holds the moderator role, count one
       invite for them.  No tracked-channel requirement — invites are
       guild-wide.
    4. Replace the cached snapshot with the new one, whatever happened in
       2–3, so the same usage is never credited twice.

Invite create/delete rebuilds the snapshot without diffing: the set of
codes changed, so an old comparison would be meaningless.

Everything runs under the guild's lock from
:class:`~modledger.engine.cache.InviteSnapshotCache`, and platform
failures degrade to "no credit, cache unchanged" — they are logged here
and never raised to the event loop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from modledger.database.engine import run_db
from modledger.engine.cache import InviteSnapshotCache
from modledger.engine.invites import InviteSnapshot, UsedInvite, find_used_invite
from modledger.errors import UpstreamUnavailableError
from modledger.services import ledger_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from modledger.engine.platform import ChatPlatform
    from modledger.services.settings_service import SettingsAccessor

logger = logging.getLogger(__name__)


class InviteTracker:
    """Owns the invite snapshot cache and the attribution algorithm."""

    def __init__(
        self,
        engine: Engine,
        settings: SettingsAccessor,
        platform: ChatPlatform,
        cache: InviteSnapshotCache | None = None,
    ) -> None:
        self.engine = engine
        self.settings = settings
        self.platform = platform
        self.cache = cache or InviteSnapshotCache()

    # -------------------------------------------------------------------
    # Snapshot refresh
    # -------------------------------------------------------------------
    async def _fetch_snapshot(self, guild_id: int) -> InviteSnapshot:
        invites = await self.platform.list_invites(guild_id)
        return InviteSnapshot.from_invites(invites)

    async def refresh_guild(self, guild_id: int) -> bool:
        """Rebuild *guild_id*'s snapshot unconditionally.

        Returns ``False`` (cache left as it was) when the invites couldn't
        be fetched.
        """
        async with self.cache.lock(guild_id):
            try:
                snapshot = await self._fetch_snapshot(guild_id)
            except UpstreamUnavailableError as exc:
                logger.warning("Invite refresh failed for guild %s: %s", guild_id, exc)
                return False
            self.cache.replace(guild_id, snapshot)
        logger.info("Invite cache refreshed for guild %s (%d invites)", guild_id, len(snapshot))
        return True

    async def refresh_all(self) -> int:
        """Refresh every guild the bot is in.  Returns how many succeeded."""
        logger.info("Refreshing invite cache…")
        refreshed = 0
        for guild_id in self.platform.guild_ids():
            if await self.refresh_guild(guild_id):
                refreshed += 1
        return refreshed

    # -------------------------------------------------------------------
    # Attribution
    # -------------------------------------------------------------------
    async def handle_member_join(self, guild_id: int, account_id: int) -> int | None:
        """Attribute a join to an invite.

        Returns the credited inviter's account id, or ``None`` when nothing
        was credited.
        """
        async with self.cache.lock(guild_id):
            previous = self.cache.get(guild_id)
            try:
                current = await self._fetch_snapshot(guild_id)
            except UpstreamUnavailableError as exc:
                logger.warning(
                    "Could not fetch invites for join of %d in guild %s: %s",
                    account_id, guild_id, exc,
                )
                return None

            try:
                if previous is None:
                    logger.info(
                        "No invite baseline for guild %s yet; join of %d not attributed",
                        guild_id, account_id,
                    )
                    return None

                used = find_used_invite(previous, current)
                if used is None:
                    logger.debug("No invite usage change for join of %d", account_id)
                    return None
                return await self._credit(guild_id, account_id, used)
            finally:
                self.cache.replace(guild_id, current)

    async def _credit(self, guild_id: int, joined_id: int, used: UsedInvite) -> int | None:
        if used.inviter_id is None:
            return None

        role_id = await run_db(self.settings.moderator_role_id)
        if role_id is None:
            logger.debug("Invite %s not credited: moderator role not configured", used.code)
            return None

        try:
            inviter = await self.platform.get_member(guild_id, used.inviter_id)
        except UpstreamUnavailableError as exc:
            logger.warning("Could not fetch inviter %d: %s", used.inviter_id, exc)
            return None
        if inviter is None or role_id not in inviter.role_ids:
            return None

        moderator, applied = await run_db(
            ledger_service.apply_invite_event,
            self.engine,
            used.inviter_id,
            inviter.identity,
        )
        if not applied:
            logger.debug("Invite by excluded moderator %s not counted", moderator.username)
            return None

        logger.info(
            "Invite %s credited to %s (%d invites) for join of %d",
            used.code, moderator.username, moderator.invite_count, joined_id,
        )
        return used.inviter_id
