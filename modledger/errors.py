"""
modledger.errors — Error Taxonomy
==================================

Shared by the bot and the API.  Ingestion paths (message, join, recovery)
catch these and log; command/API paths let them propagate so the operator
sees a structured failure.  Each class carries the HTTP status the API
maps it to.
"""

from __future__ import annotations


class ModLedgerError(Exception):
    """Base class for every expected failure in ModLedger."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationMissingError(ModLedgerError):
    """A required setting (tracked channel, moderator role) is not set."""

    status_code = 409

    def __init__(self, key: str) -> None:
        super().__init__(f"Setting '{key}' is not configured")
        self.key = key


class NotFoundError(ModLedgerError):
    """The operation targets a moderator that does not exist."""

    status_code = 404


class ValidationError(ModLedgerError):
    """Malformed input to a mutation; rejected before touching the ledger."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class UpstreamUnavailableError(ModLedgerError):
    """The chat platform could not be reached (or the bot is offline)."""

    status_code = 503
