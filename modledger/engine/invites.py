"""
modledger.engine.invites — Invite Snapshots & Usage Diffing
============================================================

Discord does not say which invite a new member used.  We infer it by
comparing two point-in-time snapshots of every invite's use count: the
invite whose count went up between the snapshots is the one consumed.

Pure calculation — the snapshots are built by
:mod:`modledger.services.invite_service` from live platform data.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

from modledger.engine.events import InviteInfo

__all__ = ["InviteSnapshot", "InviteUsage", "UsedInvite", "find_used_invite"]


@dataclass(frozen=True, slots=True)
class InviteUsage:
    uses: int
    inviter_id: int | None = None


@dataclass(frozen=True, slots=True)
class UsedInvite:
    code: str
    inviter_id: int | None
    delta: int


class InviteSnapshot(Mapping[str, InviteUsage]):
    """Immutable ``code → InviteUsage`` mapping for one guild.

    Iteration follows the order the platform listed the invites, which
    makes :func:`find_used_invite`'s "first match wins" deterministic.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, InviteUsage] | None = None) -> None:
        self._entries: dict[str, InviteUsage] = dict(entries or {})

    @classmethod
    def from_invites(cls, invites: Iterable[InviteInfo]) -> InviteSnapshot:
        return cls({
            inv.code: InviteUsage(uses=inv.uses or 0, inviter_id=inv.inviter_id)
            for inv in invites
        })

    def __getitem__(self, code: str) -> InviteUsage:
        return self._entries[code]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        body = ", ".join(f"{c}={u.uses}" for c, u in self._entries.items())
        return f"<InviteSnapshot {body}>"


def find_used_invite(old: InviteSnapshot, new: InviteSnapshot) -> UsedInvite | None:
    """Return the first invite present in both snapshots whose use count rose.

    Invites that only exist in *new* are skipped: there is no baseline to
    compare them with.  If several invites rose at once (simultaneous
    joins) the first one found wins — the others are not attributed.
    """
    for code, current in new.items():
        previous = old.get(code)
        if previous is None:
            continue
        delta = current.uses - previous.uses
        if delta > 0:
            return UsedInvite(code=code, inviter_id=current.inviter_id, delta=delta)
    return None
