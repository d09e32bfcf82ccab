"""Hard feasibility checks and table search shared by sync and optimizer."""
from __future__ import annotations

import math
from typing import Optional, Sequence

from . import config
from .models import GenderAffinity, Partition, Roster, SeatKey, Table
from .naming import base_name, next_table_number
from .operations import new_table_id
from .state import SeatingState


def feasible_with(
    state: SeatingState,
    roster: Roster,
    table: Table,
    keys: Sequence[SeatKey],
    ignore: Sequence[SeatKey] = (),
) -> bool:
    """Capacity, affinity, keep-separate and group-mixing checks for seating ``keys`` at ``table``."""
    if not all(table.accepts(key.partition) for key in keys):
        return False
    existing = [k for k in state.seated(table.id) if k not in keys and k not in ignore]
    size = sum(roster.size_of(k) for k in keys)
    if sum(roster.size_of(k) for k in existing) + size > table.capacity:
        return False

    prefs = state.preferences
    existing_ids = {k.guest_id for k in existing}
    for key in keys:
        if prefs.separated_from(key.guest_id) & existing_ids:
            return False
    if not prefs.allow_group_mixing and existing:
        groups = {roster.group_of(k.guest_id) for k in existing}
        groups |= {roster.group_of(k.guest_id) for k in keys}
        if len(groups) > 1:
            return False
    return True


def first_fit(
    state: SeatingState, roster: Roster, keys: Sequence[SeatKey], exclude: Sequence[str] = ()
) -> Optional[Table]:
    """First table in registry order that can host every key."""
    for table in state.tables:
        if table.id in exclude:
            continue
        if feasible_with(state, roster, table, keys):
            return table
    return None


def best_fit(
    state: SeatingState, roster: Roster, keys: Sequence[SeatKey], exclude: Sequence[str] = ()
) -> Optional[Table]:
    """Feasible table leaving the fewest free seats; registry order breaks ties."""
    best: Optional[Table] = None
    best_free = None
    for table in state.tables:
        if table.id in exclude or not feasible_with(state, roster, table, keys):
            continue
        free = state.free_seats(table.id, roster)
        if best_free is None or free < best_free:
            best, best_free = table, free
    return best


def sync_table_capacity(size: int, minimum: Optional[int] = None) -> Optional[int]:
    """Capacity for a table synthesized around a party of ``size``.

    ``None`` when the party cannot fit any table within the allowed range.
    """
    if size > config.MAX_TABLE_CAPACITY:
        return None
    if minimum is None:
        minimum = config.MIN_SYNC_TABLE_SIZE
    grown = max(minimum, math.ceil(size * config.SYNC_TABLE_GROWTH))
    return max(size, min(grown, config.MAX_TABLE_CAPACITY))


def create_table_for(state: SeatingState, size: int, partition: Partition = Partition.UNIFIED) -> Optional[Table]:
    """Append an auto-created table sized for a party of ``size``.

    Separated-mode partitions get a table of the matching affinity.
    """
    capacity = sync_table_capacity(size, state.sync_settings.preferred_table_size)
    if capacity is None:
        return None
    affinity = GenderAffinity.NONE if partition is Partition.UNIFIED else GenderAffinity(partition.value)
    table = Table(
        id=new_table_id(),
        name=base_name(next_table_number(state.tables)),
        capacity=capacity,
        affinity=affinity,
        auto_created=True,
    )
    state.tables.append(table)
    return table
