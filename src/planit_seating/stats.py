"""Occupancy statistics for tables and whole arrangements."""
from __future__ import annotations

from typing import Dict, List

from .models import Roster
from .naming import dominant_group, group_display_name
from .state import SeatingState


def compute_table_stats(state: SeatingState, roster: Roster) -> List[Dict[str, object]]:
    """Per-table occupancy, free seats, utilization and seated guest names."""
    stats = []
    for table in state.tables:
        keys = state.seated(table.id)
        occupancy = state.occupancy(table.id, roster)
        group = dominant_group(table.id, state, roster)
        stats.append(
            {
                "table_id": table.id,
                "table": table.name,
                "type": table.type.value,
                "affinity": table.affinity.value,
                "capacity": table.capacity,
                "occupancy": occupancy,
                "free": table.capacity - occupancy,
                "utilization": round(100.0 * occupancy / table.capacity, 1) if table.capacity else 0.0,
                "over_capacity": occupancy > table.capacity,
                "dominant_group": group_display_name(group) if group else "",
                "members": [roster.name_of(k.guest_id) for k in keys],
            }
        )
    return stats


def compute_statistics(state: SeatingState, roster: Roster) -> Dict[str, object]:
    """Totals for the whole arrangement.

    A guest counts as seated only when every one of their seating entities
    is placed.
    """
    seated = state.seated_keys()
    entities = roster.entities()
    seated_guests = set()
    unseated_guests = set()
    for key in entities:
        if key in seated:
            seated_guests.add(key.guest_id)
        else:
            unseated_guests.add(key.guest_id)
    seated_guests -= unseated_guests

    total_capacity = sum(t.capacity for t in state.tables)
    seated_people = sum(roster.size_of(k) for k in entities if k in seated)
    total_people = sum(roster.size_of(k) for k in entities)
    return {
        "total_tables": len(state.tables),
        "occupied_tables": sum(1 for t in state.tables if state.seated(t.id)),
        "total_capacity": total_capacity,
        "confirmed_guests": len(roster.confirmed),
        "seated_guests": len(seated_guests),
        "unseated_guests": len(unseated_guests),
        "seated_people": seated_people,
        "total_people": total_people,
        "utilization": round(100.0 * seated_people / total_capacity, 1) if total_capacity else 0.0,
    }
