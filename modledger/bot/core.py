"""
modledger.bot.core — Bot Instance & Cog Loader
===============================================

Defines :class:`ModLedgerBot`, a ``commands.Bot`` subclass that:

1. Carries the shared config, DB engine, settings accessor, platform
   adapter and invite tracker so every Cog can reach them via
   ``self.bot.*``.
2. Loads every Cog in ``modledger/bot/cogs/``.
3. Syncs the slash-command tree on ready (guild-scoped for dev, global for
   production — controlled by the ``DEV_GUILD_ID`` env var).
4. On the first ready of the process, rebuilds the invite snapshots and
   runs message recovery.
5. Exposes ``refresh_invite_cache()`` and ``generate_leaderboard()`` for
   the dashboard API and the admin commands.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from modledger.bot.platform import DiscordPlatform, identity_of
from modledger.config import ModLedgerConfig
from modledger.engine.events import MessageEvent
from modledger.services import leaderboard_service, recovery_service
from modledger.services.invite_service import InviteTracker
from modledger.services.leaderboard_service import LeaderboardReport
from modledger.services.recovery_service import RecoveryResult
from modledger.services.settings_service import SettingsAccessor

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "modledger.bot.cogs.tracking",
    "modledger.bot.cogs.invites",
    "modledger.bot.cogs.admin",
    "modledger.bot.cogs.stats",
]


class ModLedgerBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`ModLedgerConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine` connected to PostgreSQL.
    """

    def __init__(self, cfg: ModLedgerConfig, engine: Engine) -> None:
        # GUILD_MEMBERS is privileged (enable in the Developer Portal):
        # needed for join events and the role check on inviters.
        # Invites and guild messages are part of Intents.default().
        intents = discord.Intents.default()
        intents.members = True
        intents.presences = False

        super().__init__(command_prefix=cfg.bot_prefix, intents=intents)

        self.cfg = cfg
        self.engine = engine
        self.settings = SettingsAccessor(engine)
        self.platform = DiscordPlatform(self)
        self.invites = InviteTracker(engine, self.settings, self.platform)

        self._startup_done = False

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load all Cog extensions.  One broken Cog shouldn't take down the
        whole bot, so failures are logged and skipped."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated.

        Also fires after reconnects; the startup jobs only run once.
        """
        assert self.user is not None
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        await self._sync_commands()

        if self._startup_done:
            return
        self._startup_done = True

        await self.refresh_invite_cache()
        await self.recover_missed_messages()

    async def _sync_commands(self) -> None:
        try:
            dev_guild_id = os.getenv("DEV_GUILD_ID")
            if dev_guild_id:
                guild = discord.Object(id=int(dev_guild_id))
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
            else:
                synced = await self.tree.sync()
                logger.info("Synced %d commands globally", len(synced))
        except discord.HTTPException:
            logger.exception("Slash-command sync failed")

    # -----------------------------------------------------------------------
    # Core operations
    # -----------------------------------------------------------------------
    async def refresh_invite_cache(self) -> int:
        """Rebuild every guild's invite snapshot.  Returns guilds refreshed."""
        return await self.invites.refresh_all()

    async def recover_missed_messages(self) -> RecoveryResult | None:
        try:
            return await recovery_service.recover_missed_messages(
                self.engine,
                self.settings,
                self.platform,
                page_size=self.cfg.recovery_page_size,
                max_messages=self.cfg.recovery_max_messages,
            )
        except Exception:
            logger.exception("Message recovery failed", extra={"task": "recovery"})
            return None

    async def generate_leaderboard(self) -> LeaderboardReport:
        """Rank, grant bonuses, post the report.  Errors propagate to the
        caller (slash command or API)."""
        return await leaderboard_service.generate_leaderboard(
            self.engine,
            self.settings,
            self.platform,
            title=self.cfg.leaderboard_title,
        )

    # -----------------------------------------------------------------------
    # Event normalization
    # -----------------------------------------------------------------------
    @staticmethod
    def message_event(message: discord.Message) -> MessageEvent:
        """Build a :class:`MessageEvent` from a Discord message.

        Roles come from ``message.author`` when it is a full ``Member``;
        otherwise the tracking service asks the platform.
        """
        roles = getattr(message.author, "roles", None)
        return MessageEvent(
            account_id=message.author.id,
            channel_id=message.channel.id,
            guild_id=message.guild.id if message.guild else None,
            identity=identity_of(message.author),
            is_bot=message.author.bot,
            role_ids=frozenset(r.id for r in roles) if roles is not None else None,
            timestamp=message.created_at,
        )
