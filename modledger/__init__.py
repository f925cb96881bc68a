"""
ModLedger — Moderator Activity Points for Discord
===================================================
Tracks moderator activity (messages in a tracked channel, invites used by
new members), converts it into a points balance, ranks the team on a
leaderboard, and exposes everything through a small dashboard API.

Package layout::

    modledger/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Shared constants + UTC helpers
    ├── errors.py          # Error taxonomy shared by bot and API
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # Moderator + Setting tables
    │   └── seed.py        # Default settings seeder
    ├── engine/
    │   ├── events.py      # MessageEvent / HistoricalMessage envelopes
    │   ├── points.py      # THE derived-total formula + ranking
    │   ├── invites.py     # Invite snapshots + usage diffing
    │   ├── cache.py       # Per-guild invite snapshot cache
    │   └── platform.py    # Chat platform protocol the core depends on
    ├── services/
    │   ├── ledger_service.py      # Atomic moderator ledger mutations
    │   ├── settings_service.py    # Settings CRUD + read-through accessor
    │   ├── tracking_service.py    # Live message gating
    │   ├── invite_service.py      # Invite attribution on member join
    │   ├── recovery_service.py    # Startup catch-up of missed messages
    │   └── leaderboard_service.py # Ranking, bonus grants, report
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader, startup jobs
    │   ├── platform.py    # discord.py implementation of ChatPlatform
    │   ├── embeds.py      # Embed builders
    │   └── cogs/          # tracking, invites, admin, stats
    └── api/
        ├── main.py        # FastAPI app (+ embedded bot)
        ├── deps.py        # Dependency injection
        └── routes/        # moderators, settings, bot actions
"""

__version__ = "0.1.0"
