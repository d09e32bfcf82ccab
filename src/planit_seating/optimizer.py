"""Post-sync cleanup: drop empty tables and fold nearly empty ones into others."""
from __future__ import annotations

import logging
from typing import List

from . import config
from .actions import ActionKind, SyncAction
from .models import Roster
from .placement import feasible_with
from .state import SeatingState

logger = logging.getLogger(__name__)


def optimize_tables(state: SeatingState, roster: Roster, merge: bool = True) -> List[SyncAction]:
    """Optimize ``state`` in place and return the guest-visible actions.

    Tables are considered in registry order. An empty table is removed
    silently. A table at or below a third of its capacity moves all of its
    entities to the first other table able to take every one of them; a table
    is never split and no entity is ever dropped.
    """
    merged = 0
    for table in list(state.tables):
        if state.find_table(table.id) is None:
            continue
        if not state.seated(table.id):
            state.drop_table(table.id)
            logger.debug("Removed empty %s", table.name)
            continue
        if not merge or len(state.tables) < 2:
            continue
        occupancy = state.occupancy(table.id, roster)
        if occupancy > table.capacity * config.MERGE_OCCUPANCY_RATIO:
            continue

        keys = list(state.seated(table.id))
        target = next(
            (
                other
                for other in state.tables
                if other.id != table.id and feasible_with(state, roster, other, keys)
            ),
            None,
        )
        if target is None:
            continue
        for key in keys:
            state.place(key, target.id)
        state.drop_table(table.id)
        merged += 1
        logger.info("Merged %s into %s (%d guests)", table.name, target.name, occupancy)

    if merged:
        return [SyncAction(ActionKind.ARRANGEMENT_OPTIMIZED)]
    return []


def remove_empty_tables(state: SeatingState, roster: Roster) -> int:
    """Drop tables without occupants; returns how many went."""
    before = len(state.tables)
    optimize_tables(state, roster, merge=False)
    return before - len(state.tables)
