"""
modledger.database.engine — Engine, Sessions & the Thread Bridge
=================================================================

The ledger services are plain synchronous SQLAlchemy.  Cogs and async
services reach them through :func:`run_db`, which runs the call on a
worker thread so the gateway loop never blocks on a query.  Counter
changes are single ``UPDATE`` statements, so concurrent ``run_db``
calls on the same account never lose an increment.

Usage::

    engine = create_db_engine()
    init_db(engine)
    mod, applied = await run_db(apply_message_event, engine, account_id)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from modledger.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine() -> Engine:
    """Build a SQLAlchemy :class:`Engine` from the ``DATABASE_URL`` env var.

    Pool: 5 persistent connections, up to 10 overflow, 10 s checkout
    timeout, hourly recycle.

    Raises
    ------
    RuntimeError
        If ``DATABASE_URL`` is not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    engine = create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create missing tables and seed the default rates.  Idempotent."""
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")

    from modledger.database.seed import seed_default_settings

    seed_default_settings(engine)


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that auto-commits on success and rolls back
    on exception.  Loaded objects stay readable after the block exits.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Thread bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await *func* on a worker thread."""
    return await asyncio.to_thread(func, *args, **kwargs)
