"""
modledger.config — YAML Configuration Loader
=============================================

**Why this file exists:**
This module reads ``config.yaml`` for **infrastructure-only** settings
(command prefix, dashboard port, recovery bounds).  Everything an admin
tunes at runtime (moderator role, tracked channel, point rates) lives in
the ``settings`` database table, editable from the dashboard or via
``/set``.

Usage::

    from modledger.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    print(cfg.recovery_max_messages)  # 500
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from modledger.constants import (
    DEFAULT_LEADERBOARD_TITLE,
    RECOVERY_MAX_MESSAGES,
    RECOVERY_PAGE_SIZE,
)


# ---------------------------------------------------------------------------
# Typed settings object — infrastructure only.
# Runtime tuning lives in the DB ``settings`` table.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ModLedgerConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Discord
    bot_prefix: str = "!"

    # Dashboard
    dashboard_port: int = 8000

    # Recovery scanner bounds
    recovery_page_size: int = RECOVERY_PAGE_SIZE
    recovery_max_messages: int = RECOVERY_MAX_MESSAGES

    # Leaderboard report
    leaderboard_title: str = DEFAULT_LEADERBOARD_TITLE


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> ModLedgerConfig:
    """Read *path* and return a :class:`ModLedgerConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to the
        ``MODLEDGER_CONFIG`` env var, then ``config.yaml`` in the current
        working directory.  A missing file yields the built-in defaults —
        every key is optional.

    Raises
    ------
    ValueError
        If a numeric key holds a non-numeric or non-positive value.
    """
    config_path = Path(path or os.getenv("MODLEDGER_CONFIG", "config.yaml"))
    if not config_path.exists():
        return ModLedgerConfig()

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    page_size = int(raw.get("recovery_page_size", RECOVERY_PAGE_SIZE))
    max_messages = int(raw.get("recovery_max_messages", RECOVERY_MAX_MESSAGES))
    if page_size <= 0 or max_messages <= 0:
        raise ValueError(
            f"{config_path}: recovery_page_size and recovery_max_messages "
            "must be positive integers."
        )

    return ModLedgerConfig(
        bot_prefix=str(raw.get("bot_prefix", "!")),
        dashboard_port=int(raw.get("dashboard_port", 8000)),
        recovery_page_size=page_size,
        recovery_max_messages=max_messages,
        leaderboard_title=str(raw.get("leaderboard_title", DEFAULT_LEADERBOARD_TITLE)),
    )
