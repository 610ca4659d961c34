# campus_portal/services/membership.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple


@dataclass(frozen=True)
class MembershipResult:
    member: bool
    count: int


def toggle_member(members: Sequence[str], user_id: str) -> Tuple[List[str], MembershipResult]:
    """
    Remove `user_id` if present, otherwise append it.
    Returns a new list (JSON columns only persist reassignment).
    """
    uid = str(user_id)
    current = [str(m) for m in members or []]
    if uid in current:
        updated = [m for m in current if m != uid]
        return updated, MembershipResult(member=False, count=len(updated))
    updated = [*current, uid]
    return updated, MembershipResult(member=True, count=len(updated))


def add_member(members: Sequence[str], user_id: str) -> Tuple[List[str], bool]:
    """
    Add-only variant. Returns (members, added); `added` is False when already present.
    """
    uid = str(user_id)
    current = [str(m) for m in members or []]
    if uid in current:
        return current, False
    return [*current, uid], True
