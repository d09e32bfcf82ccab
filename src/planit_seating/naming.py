"""Table naming from the dominant seated group.

Auto names look like ``"Table 3"`` or ``"Table 3 - Family"``. Tables the
planner renamed keep their name forever.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, Optional

from . import config
from .models import BUILTIN_GROUPS, Roster, Table
from .state import SeatingState

_NUMBER = re.compile(r"(\d+)")


def _auto_patterns():
    label = re.escape(config.TABLE_LABEL)
    return re.compile(rf"^{label} \d+$"), re.compile(rf"^{label} \d+ - .+$")


def group_display_name(group: str) -> str:
    return BUILTIN_GROUPS.get(group, group)


def table_number(name: str, default: int = 1) -> int:
    match = _NUMBER.search(name or "")
    return int(match.group(1)) if match else default


def next_table_number(tables: Iterable[Table]) -> int:
    """Max numeric suffix plus one, so deleted numbers are never reused by accident."""
    numbers = [table_number(t.name, default=0) for t in tables]
    return max(numbers, default=0) + 1


def base_name(number: int) -> str:
    return f"{config.TABLE_LABEL} {number}"


def dominant_group(table_id: str, state: SeatingState, roster: Roster) -> Optional[str]:
    """Group with the greatest seated size.

    Ties go to the group whose first member was seated earliest.
    """
    totals: Dict[str, int] = {}
    for key in state.seated(table_id):
        if roster.get(key.guest_id) is None:
            continue
        group = roster.group_of(key.guest_id)
        totals[group] = totals.get(group, 0) + roster.size_of(key)
    best = None
    for group, total in totals.items():
        if best is None or total > totals[best]:
            best = group
    return best


def derive_name(number: int, table_id: str, state: SeatingState, roster: Roster) -> str:
    name = base_name(number)
    group = dominant_group(table_id, state, roster)
    if group is None:
        return name
    return f"{name} - {group_display_name(group)}"


def is_manually_named(table: Table, state: SeatingState) -> bool:
    if table.id in state.manual_names:
        return True
    plain, grouped = _auto_patterns()
    return not (plain.match(table.name) or grouped.match(table.name))


def generated_name(table: Table, state: SeatingState, roster: Roster) -> str:
    return derive_name(table_number(table.name), table.id, state, roster)


def refresh_names(state: SeatingState, roster: Roster, table_ids: Optional[Iterable[str]] = None) -> None:
    """Recompute auto names in place; ``table_ids`` limits the pass."""
    wanted = None if table_ids is None else {t for t in table_ids if t}
    for table in state.tables:
        if wanted is not None and table.id not in wanted:
            continue
        if is_manually_named(table, state):
            continue
        table.name = generated_name(table, state, roster)
