"""
modledger.services.ledger_service — Moderator Ledger Mutations
===============================================================

Shared service module callable by both bot and dashboard.  Every function
is synchronous; async callers go through
:func:`~modledger.database.engine.run_db`.

Concurrency model:
    Counter changes are single ``UPDATE moderators SET col = col + n``
    statements, so the database serializes concurrent updates to one
    account while updates to different accounts stay independent.  No
    read-modify-write happens in Python, so two near-simultaneous messages
    from the same moderator can't lose an increment.

Ignore gating:
    ``apply_message_event`` / ``apply_invite_event`` only touch
    non-ignored rows (the filter is part of the UPDATE).  Manual grants and
    leaderboard bonuses always apply.  Identity refresh always applies.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import not_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from modledger.constants import utcnow
from modledger.database.engine import get_session
from modledger.database.models import Moderator
from modledger.engine.events import MemberIdentity
from modledger.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

# manual_points is a 32-bit column; keep single grants well inside it
MAX_MANUAL_DELTA = 1_000_000


# ---------------------------------------------------------------------------
# Session-level helpers
# ---------------------------------------------------------------------------
def find_by_account(session: Session, account_id: int) -> Moderator | None:
    return session.scalar(select(Moderator).where(Moderator.discord_id == account_id))


def get_or_create_moderator(
    session: Session,
    account_id: int,
    identity: MemberIdentity | None = None,
    *,
    ignored: bool = False,
) -> tuple[Moderator, bool]:
    """Fetch or insert the ledger row for *account_id*.

    Returns ``(moderator, created)``.  A concurrent insert of the same
    account loses on the unique constraint; we roll back to the SAVEPOINT
    and return the winner's row instead.
    """
    moderator = find_by_account(session, account_id)
    if moderator is not None:
        return moderator, False

    identity = identity or MemberIdentity(username=str(account_id))
    moderator = Moderator(
        discord_id=account_id,
        username=identity.username,
        avatar=identity.avatar,
        is_ignored=ignored,
        message_count=0,
        invite_count=0,
        leaderboard_points=0,
        manual_points=0,
        last_updated=utcnow(),
    )
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(moderator)
    except IntegrityError:
        existing = find_by_account(session, account_id)
        if existing is None:
            raise
        return existing, False

    logger.info("Ledger record created for %s (%d)", identity.username, account_id)
    return moderator, True


def _refresh_identity(
    session: Session, moderator: Moderator, identity: MemberIdentity | None,
) -> None:
    """Update username/avatar if they changed.  Never touches counters or
    the ignore flag."""
    if identity is None:
        return
    changes: dict[str, object] = {}
    if identity.username and moderator.username != identity.username:
        changes["username"] = identity.username
    if moderator.avatar != identity.avatar:
        changes["avatar"] = identity.avatar
    if not changes:
        return
    session.execute(
        update(Moderator)
        .where(Moderator.id == moderator.id)
        .values(**changes, last_updated=utcnow())
        .execution_options(synchronize_session=False)
    )


def _increment(
    session: Session,
    account_id: int,
    *,
    only_active: bool,
    **increments: int,
) -> bool:
    """Atomically add *increments* to the named columns.

    Returns ``True`` if a row was updated (``False`` when the account is
    unknown, or ignored and *only_active* is set).
    """
    values = {
        column: getattr(Moderator, column) + amount
        for column, amount in increments.items()
    }
    stmt = (
        update(Moderator)
        .where(Moderator.discord_id == account_id)
        .values(**values, last_updated=utcnow())
        .execution_options(synchronize_session=False)
    )
    if only_active:
        stmt = stmt.where(Moderator.is_ignored.is_(False))
    return session.execute(stmt).rowcount > 0


def _detach(session: Session, moderator: Moderator) -> Moderator:
    session.flush()
    session.refresh(moderator)
    session.expunge(moderator)
    return moderator


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_moderator(engine: Engine, moderator_id: int) -> Moderator | None:
    with Session(engine) as session:
        moderator = session.get(Moderator, moderator_id)
        if moderator is not None:
            session.expunge(moderator)
        return moderator


def get_moderator_by_account(engine: Engine, account_id: int) -> Moderator | None:
    with Session(engine) as session:
        moderator = find_by_account(session, account_id)
        if moderator is not None:
            session.expunge(moderator)
        return moderator


def require_moderator(engine: Engine, moderator_id: int) -> Moderator:
    moderator = get_moderator(engine, moderator_id)
    if moderator is None:
        raise NotFoundError(f"Moderator {moderator_id} not found")
    return moderator


def list_moderators(engine: Engine) -> list[Moderator]:
    """Every ledger row in creation order (the leaderboard's tie order)."""
    with Session(engine) as session:
        rows = session.scalars(select(Moderator).order_by(Moderator.id)).all()
        for r in rows:
            session.expunge(r)
        return list(rows)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------
def get_or_create(
    engine: Engine,
    account_id: int,
    identity: MemberIdentity | None = None,
    *,
    ignored: bool = False,
) -> Moderator:
    """Idempotent by *account_id*; never resets an existing record."""
    with get_session(engine) as session:
        moderator, _ = get_or_create_moderator(session, account_id, identity, ignored=ignored)
        return _detach(session, moderator)


def _apply_activity(
    engine: Engine,
    account_id: int,
    identity: MemberIdentity | None,
    column: str,
) -> tuple[Moderator, bool]:
    with get_session(engine) as session:
        moderator, _ = get_or_create_moderator(session, account_id, identity)
        _refresh_identity(session, moderator, identity)
        applied = _increment(session, account_id, only_active=True, **{column: 1})
        if not applied:
            logger.debug("Skipped %s for ignored account %d", column, account_id)
        return _detach(session, moderator), applied


def apply_message_event(
    engine: Engine,
    account_id: int,
    identity: MemberIdentity | None = None,
) -> tuple[Moderator, bool]:
    """Count one tracked message.

    Returns ``(moderator, applied)``; *applied* is ``False`` for ignored
    records, whose counters stay untouched.
    """
    return _apply_activity(engine, account_id, identity, "message_count")


def apply_invite_event(
    engine: Engine,
    account_id: int,
    identity: MemberIdentity | None = None,
) -> tuple[Moderator, bool]:
    """Count one credited invite.  Same ignore semantics as messages."""
    return _apply_activity(engine, account_id, identity, "invite_count")


def increment_recovered_message(engine: Engine, account_id: int) -> bool:
    """Count one backfilled message for an *existing*, non-ignored record.

    Used by the recovery scanner, which never creates records.
    """
    with get_session(engine) as session:
        return _increment(session, account_id, only_active=True, message_count=1)


def _validate_delta(delta: object) -> int:
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("Points must be an integer", field="points")
    if abs(delta) > MAX_MANUAL_DELTA:
        raise ValidationError(
            f"Points must be between -{MAX_MANUAL_DELTA} and {MAX_MANUAL_DELTA}",
            field="points",
        )
    return delta


def grant_manual_points(
    engine: Engine,
    account_id: int,
    delta: int,
    reason: str = "",
    identity: MemberIdentity | None = None,
    *,
    actor_id: int | None = None,
) -> Moderator:
    """Add signed *delta* to ``manual_points``, even for ignored records.

    *reason* and *actor_id* are recorded in the log only.
    """
    delta = _validate_delta(delta)
    with get_session(engine) as session:
        moderator, _ = get_or_create_moderator(session, account_id, identity)
        _refresh_identity(session, moderator, identity)
        _increment(session, account_id, only_active=False, manual_points=delta)
        logger.info(
            "Manual points: %+d to %s (%d) by %s — %s",
            delta, moderator.username, account_id, actor_id or "dashboard",
            reason or "no reason given",
        )
        return _detach(session, moderator)


def grant_manual_points_by_id(
    engine: Engine,
    moderator_id: int,
    delta: int,
    reason: str = "",
) -> Moderator:
    """Dashboard variant addressed by the surrogate id.  Unknown id →
    :class:`NotFoundError`."""
    delta = _validate_delta(delta)
    moderator = require_moderator(engine, moderator_id)
    return grant_manual_points(engine, moderator.discord_id, delta, reason)


def grant_leaderboard_points(engine: Engine, account_id: int, amount: int) -> bool:
    """Add a leaderboard bonus.  Bonuses accumulate across runs."""
    with get_session(engine) as session:
        return _increment(session, account_id, only_active=False, leaderboard_points=amount)


def set_ignored(
    engine: Engine,
    account_id: int,
    flag: bool,
    identity: MemberIdentity | None = None,
) -> Moderator:
    """Include/exclude an account.  Creates the record if needed (so an
    admin can exclude someone before they ever post); never resets
    counters."""
    with get_session(engine) as session:
        moderator, created = get_or_create_moderator(session, account_id, identity, ignored=flag)
        if not created:
            _refresh_identity(session, moderator, identity)
            session.execute(
                update(Moderator)
                .where(Moderator.id == moderator.id)
                .values(is_ignored=flag, last_updated=utcnow())
                .execution_options(synchronize_session=False)
            )
        logger.info("Account %d %s", account_id, "excluded" if flag else "included")
        return _detach(session, moderator)


def toggle_ignored(engine: Engine, moderator_id: int) -> Moderator:
    """Flip ``is_ignored`` for the dashboard.  Unknown id →
    :class:`NotFoundError`."""
    with get_session(engine) as session:
        result = session.execute(
            update(Moderator)
            .where(Moderator.id == moderator_id)
            .values(is_ignored=not_(Moderator.is_ignored), last_updated=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError(f"Moderator {moderator_id} not found")
        moderator = session.get(Moderator, moderator_id)
        return _detach(session, moderator)
