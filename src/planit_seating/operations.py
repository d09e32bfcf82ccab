"""Manual seating edits.

Every function takes a ``SeatingState`` and returns a new one; the input is
never mutated, so hosts can keep the previous state for undo or comparison.
"""
from __future__ import annotations

import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from . import config
from .actions import ActionKind, SyncAction
from .errors import (
    AffinityMismatch,
    CapacityExceeded,
    CapacityTooSmall,
    InvalidCapacityRange,
    UnknownGuest,
)
from .models import GenderAffinity, Roster, SeatKey, Table, TableType
from .naming import base_name, derive_name, next_table_number, refresh_names, table_number
from .state import SeatingState

logger = logging.getLogger(__name__)

_PATCHABLE = {"name", "capacity", "type", "affinity", "position", "rotation", "notes"}


def new_table_id(prefix: str = "table") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def check_capacity_range(capacity: int) -> None:
    if not config.MIN_TABLE_CAPACITY <= capacity <= config.MAX_TABLE_CAPACITY:
        raise InvalidCapacityRange(capacity, config.MIN_TABLE_CAPACITY, config.MAX_TABLE_CAPACITY)


def seat(state: SeatingState, roster: Roster, key: SeatKey, table_id: str) -> SeatingState:
    """Seat ``key`` at ``table_id``, moving it from any other table."""
    table = state.table(table_id)
    if not roster.is_seatable(key):
        raise UnknownGuest(key.label)
    if not table.accepts(key.partition):
        raise AffinityMismatch(f"{table.name} only seats {table.affinity.value} guests")
    if key in state.seated(table_id):
        return state

    occupancy = state.occupancy(table_id, roster)
    size = roster.size_of(key)
    if occupancy + size > table.capacity:
        raise CapacityExceeded(table.name, occupancy, size, table.capacity)

    new_state = state.clone()
    vacated = new_state.place(key, table_id)
    refresh_names(new_state, roster, [table_id, vacated])
    logger.debug("Seated %s at %s", key.label, table.name)
    return new_state


def unseat(state: SeatingState, roster: Roster, key: SeatKey) -> SeatingState:
    """Remove ``key`` from whichever table holds it. No-op when unseated."""
    if state.table_of(key) is None:
        return state
    new_state = state.clone()
    vacated = new_state.remove(key)
    refresh_names(new_state, roster, [vacated])
    return new_state


def add_table(
    state: SeatingState,
    table_type: TableType = TableType.ROUND,
    capacity: int = config.DEFAULT_TABLE_CAPACITY,
    position: Tuple[float, float] = (0.0, 0.0),
    affinity: GenderAffinity = GenderAffinity.NONE,
) -> Tuple[SeatingState, Table]:
    check_capacity_range(capacity)
    new_state = state.clone()
    table = Table(
        id=new_table_id(),
        name=base_name(next_table_number(new_state.tables)),
        capacity=capacity,
        type=TableType(table_type),
        affinity=GenderAffinity(affinity),
        position=position,
    )
    new_state.tables.append(table)
    logger.info("Added %s (%s, capacity %d)", table.name, table.type.value, capacity)
    return new_state, table


def update_table(state: SeatingState, roster: Roster, table_id: str, **patch) -> SeatingState:
    """Apply ``patch`` to a table.

    Raises ``CapacityTooSmall`` when shrinking below the seated party sizes and
    ``AffinityMismatch`` when a new affinity would reject current occupants.
    """
    unknown = set(patch) - _PATCHABLE
    if unknown:
        raise ValueError(f"Cannot update table fields: {', '.join(sorted(unknown))}")
    current = state.table(table_id)

    if "capacity" in patch:
        capacity = int(patch["capacity"])
        check_capacity_range(capacity)
        occupancy = state.occupancy(table_id, roster)
        if capacity < occupancy:
            raise CapacityTooSmall(current.name, occupancy, capacity)
    if "affinity" in patch:
        affinity = GenderAffinity(patch["affinity"])
        candidate = Table(id=current.id, name=current.name, capacity=current.capacity, affinity=affinity)
        if not all(candidate.accepts(k.partition) for k in state.seated(table_id)):
            raise AffinityMismatch(f"{current.name} holds guests outside {affinity.value}")

    new_state = state.clone()
    table = new_state.table(table_id)
    name = patch.get("name")
    if name is not None and name != current.name:
        number = table_number(name, default=table_number(current.name))
        if name == derive_name(number, table_id, state, roster):
            new_state.manual_names.discard(table_id)
        else:
            new_state.manual_names.add(table_id)
        table.name = name
    if "capacity" in patch:
        table.capacity = int(patch["capacity"])
    if "type" in patch:
        table.type = TableType(patch["type"])
    if "affinity" in patch:
        table.affinity = GenderAffinity(patch["affinity"])
    if "position" in patch:
        table.position = tuple(patch["position"])
    if "rotation" in patch:
        table.rotation = int(patch["rotation"])
    if "notes" in patch:
        table.notes = patch["notes"]
    return new_state


def delete_table(state: SeatingState, table_id: str) -> SeatingState:
    """Drop the table; its guests become unassigned."""
    table = state.table(table_id)
    new_state = state.clone()
    freed = new_state.drop_table(table_id)
    logger.info("Deleted %s, %d seat(s) released", table.name, len(freed))
    return new_state


def clear_all(state: SeatingState) -> SeatingState:
    """Empty tables, arrangement, naming marks and the sync baseline."""
    new_state = state.clone()
    new_state.tables = []
    new_state.arrangement = {}
    new_state.manual_names = set()
    new_state.fingerprint = None
    return new_state


def move_to_unassigned(
    state: SeatingState, roster: Roster, guest_ids: Iterable[str]
) -> Tuple[SeatingState, List[SyncAction]]:
    """Unseat every partition of each guest; used as the sync fallback."""
    new_state = state.clone()
    actions: List[SyncAction] = []
    touched: List[Optional[str]] = []
    for guest_id in guest_ids:
        for table_id, key in list(new_state.seats_of_guest(guest_id)):
            table = new_state.find_table(table_id)
            new_state.remove(key)
            touched.append(table_id)
            actions.append(
                SyncAction(
                    ActionKind.GUEST_UNASSIGNED,
                    guest_name=roster.name_of(guest_id),
                    table_name=table.name if table else config.UNKNOWN_TABLE,
                    partition=key.partition,
                )
            )
    refresh_names(new_state, roster, touched)
    return new_state, actions
