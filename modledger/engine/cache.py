"""
modledger.engine.cache — Per-Guild Invite Snapshot Cache
=========================================================

Holds the last observed :class:`~modledger.engine.invites.InviteSnapshot`
for every guild.  Process-lifetime only; nothing here is persisted.

Writes are always whole-snapshot replacements, never merges, so a reader
can't compare against a half-updated snapshot.  Callers that need
read-diff-replace atomicity (member join vs. invite create/delete) take
:meth:`InviteSnapshotCache.lock` for the guild.
"""

from __future__ import annotations

import asyncio
import logging
import threading

from modledger.engine.invites import InviteSnapshot

logger = logging.getLogger(__name__)


class InviteSnapshotCache:
    """Thread-safe ``guild_id → InviteSnapshot`` store.

    Usage::

        cache = InviteSnapshotCache()
        async with cache.lock(guild_id):
            old = cache.get(guild_id)
            cache.replace(guild_id, new_snapshot)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[int, InviteSnapshot] = {}
        self._guild_locks: dict[int, asyncio.Lock] = {}

    def get(self, guild_id: int) -> InviteSnapshot | None:
        with self._lock:
            return self._snapshots.get(guild_id)

    def replace(self, guild_id: int, snapshot: InviteSnapshot) -> None:
        with self._lock:
            self._snapshots[guild_id] = snapshot
        logger.debug("Invite snapshot replaced for guild %s (%d invites)", guild_id, len(snapshot))

    def discard(self, guild_id: int) -> None:
        """Forget a guild's snapshot (e.g. the bot left it).

        The guild lock stays: a join handler may still be holding it.
        """
        with self._lock:
            self._snapshots.pop(guild_id, None)

    def guild_ids(self) -> list[int]:
        with self._lock:
            return list(self._snapshots)

    def lock(self, guild_id: int) -> asyncio.Lock:
        """Return the asyncio lock serializing snapshot work for *guild_id*."""
        with self._lock:
            guild_lock = self._guild_locks.get(guild_id)
            if guild_lock is None:
                guild_lock = asyncio.Lock()
                self._guild_locks[guild_id] = guild_lock
            return guild_lock
