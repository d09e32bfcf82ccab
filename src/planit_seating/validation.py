"""Arrangement consistency checks and cleanup."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Set, Tuple

from .actions import ActionKind, SyncAction
from .models import Roster, SeatKey
from .naming import refresh_names
from .placement import create_table_for, first_fit
from .state import SeatingState

logger = logging.getLogger(__name__)

TABLE_NOT_FOUND = "table_not_found"
OVERCAPACITY = "overcapacity"
DUPLICATE_GUEST = "duplicate_guest"
AFFINITY_MISMATCH = "affinity_mismatch"


@dataclass(frozen=True)
class ValidationIssue:
    kind: str
    table_id: str = ""
    guest_id: str = ""
    message: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.kind, "tableId": self.table_id, "guestId": self.guest_id, "message": self.message}


def validate_arrangement(state: SeatingState, roster: Roster) -> List[ValidationIssue]:
    """Report orphaned entries, over-full tables, duplicate seats and affinity breaches."""
    issues: List[ValidationIssue] = []
    seen: Set[SeatKey] = set()
    for table_id, keys in state.arrangement.items():
        table = state.find_table(table_id)
        if table is None:
            issues.append(
                ValidationIssue(TABLE_NOT_FOUND, table_id=table_id, message=f"Table {table_id} does not exist")
            )
        for key in keys:
            if key in seen:
                issues.append(
                    ValidationIssue(
                        DUPLICATE_GUEST,
                        table_id=table_id,
                        guest_id=key.guest_id,
                        message=f"{roster.name_of(key.guest_id)} is seated more than once",
                    )
                )
            seen.add(key)
            if table is not None and not table.accepts(key.partition):
                issues.append(
                    ValidationIssue(
                        AFFINITY_MISMATCH,
                        table_id=table_id,
                        guest_id=key.guest_id,
                        message=f"{table.name} only seats {table.affinity.value} guests",
                    )
                )
        if table is not None:
            occupancy = state.occupancy(table_id, roster)
            if occupancy > table.capacity:
                issues.append(
                    ValidationIssue(
                        OVERCAPACITY,
                        table_id=table_id,
                        message=f"{table.name} has {occupancy} guests for {table.capacity} seats",
                    )
                )
    return issues


def repair_arrangement(state: SeatingState, roster: Roster) -> Tuple[SeatingState, List[SyncAction]]:
    """Drop duplicate seats and re-home entities whose table is gone.

    The first occurrence of a duplicated entity wins. Entities that are no
    longer seatable are dropped from orphaned entries rather than re-homed.
    """
    new_state = state.clone()
    actions: List[SyncAction] = []
    seen: Set[SeatKey] = set()
    orphans: List[SeatKey] = []

    for table_id in list(new_state.arrangement):
        kept: List[SeatKey] = []
        for key in new_state.arrangement[table_id]:
            if key in seen:
                logger.warning("Dropping duplicate seat of %s at %s", key.label, table_id)
                continue
            seen.add(key)
            kept.append(key)
        if new_state.find_table(table_id) is None:
            orphans.extend(kept)
            del new_state.arrangement[table_id]
        elif kept:
            new_state.arrangement[table_id] = kept
        else:
            del new_state.arrangement[table_id]

    for key in orphans:
        if not roster.is_seatable(key):
            continue
        name = roster.name_of(key.guest_id)
        table = first_fit(new_state, roster, [key])
        if table is None:
            table = create_table_for(new_state, roster.size_of(key), key.partition)
            if table is None:
                actions.append(SyncAction(ActionKind.GUEST_UNASSIGNED, guest_name=name, partition=key.partition))
                continue
            actions.append(SyncAction(ActionKind.TABLE_CREATED, table_name=table.name, capacity=table.capacity))
        new_state.place(key, table.id)
        actions.append(SyncAction(ActionKind.GUEST_SEATED, guest_name=name, table_name=table.name, partition=key.partition))

    if actions:
        refresh_names(new_state, roster)
    return new_state, actions

