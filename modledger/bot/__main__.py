"""
modledger.bot.__main__ — Entry point for ``python -m modledger.bot``
=====================================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (infrastructure settings).
3. Create the SQLAlchemy engine, ensure tables exist, seed defaults.
4. Create the ModLedgerBot and hand it config + engine.
5. Start the bot (blocking — runs the asyncio event loop).

Run with::

    python -m modledger.bot
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from modledger.bot.core import ModLedgerBot
from modledger.config import load_config
from modledger.constants import LOG_DATE_FORMAT, LOG_FORMAT
from modledger.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
logger = logging.getLogger("modledger")


def main() -> None:
    """Bootstrap and run the ModLedger bot."""

    # 1. Environment variables (secrets).
    load_dotenv()

    token = os.getenv("DISCORD_TOKEN")
    if not token or token == "your-discord-bot-token-here":
        logger.critical(
            "DISCORD_TOKEN is not set.  "
            "Copy .env.example → .env and paste your bot token."
        )
        sys.exit(1)

    # 2. Infrastructure configuration.
    cfg = load_config()
    logger.info(
        "Config loaded — recovery: %d per page, %d max",
        cfg.recovery_page_size, cfg.recovery_max_messages,
    )

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    # 4. Bot.
    bot = ModLedgerBot(cfg=cfg, engine=engine)

    # 5. Run (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting ModLedger bot…")
    try:
        bot.run(token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
