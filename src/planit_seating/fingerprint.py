"""Roster fingerprints and change detection between sync cycles.

A fingerprint is the minimal projection of the guest roster needed to notice
the changes that affect seating:

    new_confirmed           guest appeared already confirmed
    became_confirmed        guest switched to confirmed
    no_longer_confirmed     confirmed guest switched to another status
    guest_removed           confirmed guest disappeared from the roster
    attending_count_changed party size of a confirmed guest changed

The first capture only establishes the baseline. ``diff`` against an empty
baseline never reports anything.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterable, List, Optional, Sequence

from .models import CONFIRMED, Guest


@dataclass(frozen=True)
class GuestFingerprint:
    id: str
    status: str
    attending_count: int
    first_name: str = ""
    last_name: str = ""
    group: str = "other"
    male_count: int = 0
    female_count: int = 0

    @property
    def is_confirmed(self) -> bool:
        return self.status == CONFIRMED

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


def snapshot(guests: Iterable[Guest], confirmed_only: bool = True) -> List[GuestFingerprint]:
    """Project ``guests`` onto fingerprints, confirmed guests only by default."""
    return [
        GuestFingerprint(
            id=g.id,
            status=g.rsvp_status,
            attending_count=max(g.attending_count, 1),
            first_name=g.first_name,
            last_name=g.last_name,
            group=g.display_group,
            male_count=g.male_count,
            female_count=g.female_count,
        )
        for g in guests
        if g.is_confirmed or not confirmed_only
    ]


class ChangeKind(str, Enum):
    NEW_CONFIRMED = "new_confirmed"
    BECAME_CONFIRMED = "became_confirmed"
    NO_LONGER_CONFIRMED = "no_longer_confirmed"
    GUEST_REMOVED = "guest_removed"
    ATTENDING_COUNT_CHANGED = "attending_count_changed"


@dataclass(frozen=True)
class GuestChange:
    kind: ClassVar[ChangeKind]

    guest_id: str
    entry: GuestFingerprint

    @property
    def guest_name(self) -> str:
        return self.entry.full_name


@dataclass(frozen=True)
class NewConfirmed(GuestChange):
    kind: ClassVar[ChangeKind] = ChangeKind.NEW_CONFIRMED


@dataclass(frozen=True)
class BecameConfirmed(GuestChange):
    kind: ClassVar[ChangeKind] = ChangeKind.BECAME_CONFIRMED

    previous_status: str = ""


@dataclass(frozen=True)
class NoLongerConfirmed(GuestChange):
    kind: ClassVar[ChangeKind] = ChangeKind.NO_LONGER_CONFIRMED

    new_status: str = ""


@dataclass(frozen=True)
class GuestRemoved(GuestChange):
    kind: ClassVar[ChangeKind] = ChangeKind.GUEST_REMOVED


@dataclass(frozen=True)
class AttendingCountChanged(GuestChange):
    kind: ClassVar[ChangeKind] = ChangeKind.ATTENDING_COUNT_CHANGED

    old_count: int = 1
    new_count: int = 1
    old_male_count: int = 0
    new_male_count: int = 0
    old_female_count: int = 0
    new_female_count: int = 0


def _size_changed(prev: GuestFingerprint, cur: GuestFingerprint, separated: bool) -> bool:
    if prev.attending_count != cur.attending_count:
        return True
    return separated and (prev.male_count != cur.male_count or prev.female_count != cur.female_count)


def diff(
    old: Optional[Sequence[GuestFingerprint]],
    new: Sequence[GuestFingerprint],
    separated: bool = False,
) -> List[GuestChange]:
    """Structured changes from ``old`` to ``new``.

    Guests present in ``new`` are reported in ``new`` order, disappeared
    guests follow in ``old`` order. Gender sub-counts only matter when
    ``separated`` is set.
    """
    if not old:
        return []

    old_by_id = {fp.id: fp for fp in old}
    new_ids = {fp.id for fp in new}
    changes: List[GuestChange] = []

    for cur in new:
        prev = old_by_id.get(cur.id)
        if prev is None:
            if cur.is_confirmed:
                changes.append(NewConfirmed(cur.id, cur))
            continue
        if cur.is_confirmed and not prev.is_confirmed:
            changes.append(BecameConfirmed(cur.id, cur, previous_status=prev.status))
        elif prev.is_confirmed and not cur.is_confirmed:
            changes.append(NoLongerConfirmed(cur.id, cur, new_status=cur.status))
        elif cur.is_confirmed and _size_changed(prev, cur, separated):
            changes.append(
                AttendingCountChanged(
                    cur.id,
                    cur,
                    old_count=prev.attending_count,
                    new_count=cur.attending_count,
                    old_male_count=prev.male_count,
                    new_male_count=cur.male_count,
                    old_female_count=prev.female_count,
                    new_female_count=cur.female_count,
                )
            )

    for prev in old:
        if prev.id not in new_ids and prev.is_confirmed:
            changes.append(GuestRemoved(prev.id, prev))

    return changes
