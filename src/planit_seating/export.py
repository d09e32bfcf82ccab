"""Export of the current seating as JSON or CSV."""
from __future__ import annotations

import json
from typing import Any, Dict, List

import pandas as pd

from .models import Roster, SeatKey
from .state import SeatingState
from .stats import compute_statistics

CSV_COLUMNS = ["table", "capacity", "guest", "group", "partition", "size"]


def _seat_row(key: SeatKey, roster: Roster) -> Dict[str, Any]:
    return {
        "guest": roster.name_of(key.guest_id),
        "group": roster.group_of(key.guest_id),
        "partition": key.partition.value,
        "size": roster.size_of(key),
    }


def build_export(state: SeatingState, roster: Roster) -> Dict[str, Any]:
    """Snapshot of tables, their guests and the still unassigned entities."""
    seated = state.seated_keys()
    return {
        "isSeparatedSeating": state.separated,
        "tables": [
            {
                "name": table.name,
                "type": table.type.value,
                "capacity": table.capacity,
                "gender": table.affinity.value,
                "occupancy": state.occupancy(table.id, roster),
                "guests": [_seat_row(k, roster) for k in state.seated(table.id)],
            }
            for table in state.tables
        ],
        "unassigned": [_seat_row(k, roster) for k in roster.entities() if k not in seated],
        "statistics": compute_statistics(state, roster),
    }


def export_rows(state: SeatingState, roster: Roster) -> List[Dict[str, Any]]:
    data = build_export(state, roster)
    rows = []
    for table in data["tables"]:
        for guest in table["guests"]:
            rows.append({"table": table["name"], "capacity": table["capacity"], **guest})
    for guest in data["unassigned"]:
        rows.append({"table": "", "capacity": 0, **guest})
    return rows


def export_seating(state: SeatingState, roster: Roster, fmt: str = "json") -> str:
    """Render the seating as ``json`` or ``csv`` text."""
    fmt = fmt.lower()
    if fmt == "json":
        return json.dumps(build_export(state, roster), indent=2)
    if fmt == "csv":
        df = pd.DataFrame(export_rows(state, roster), columns=CSV_COLUMNS)
        return df.to_csv(index=False)
    raise ValueError(f"Unsupported export format: {fmt}")
