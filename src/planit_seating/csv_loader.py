"""CSV loading utilities."""
from __future__ import annotations

from pathlib import Path
from typing import IO, Any, List, Optional, Tuple, Union

import pandas as pd

from .models import (
    GenderAffinity,
    Guest,
    SeatingPreferences,
    Table,
    TableType,
    clean_text,
    parse_int,
    parse_pipe_list,
)

Source = Union[Path, str, IO[Any]]


def load_guests(path: Source) -> Tuple[List[Guest], SeatingPreferences]:
    """Load guests from ``guests.csv``.

    The optional ``keep_separate`` column holds pipe separated guest ids and
    becomes seating preferences. Every referenced id must exist.
    """
    df = pd.read_csv(path, dtype={"id": str})
    guests: List[Guest] = []
    pairs: List[Tuple[str, str]] = []
    for _, row in df.iterrows():
        guest = Guest(
            id=clean_text(row["id"]),
            first_name=clean_text(row.get("first_name", "")),
            last_name=clean_text(row.get("last_name", "")),
            group=clean_text(row.get("group", "")) or "other",
            custom_group=clean_text(row.get("custom_group", "")),
            rsvp_status=clean_text(row.get("rsvp_status", "")) or "pending",
            attending_count=parse_int(row.get("attending_count"), default=1),
            male_count=parse_int(row.get("male_count")),
            female_count=parse_int(row.get("female_count")),
        )
        guests.append(guest)
        for other in parse_pipe_list(row.get("keep_separate", "")):
            pair = tuple(sorted((guest.id, other)))
            if pair not in pairs:
                pairs.append(pair)

    ids = {g.id for g in guests}
    for a, b in pairs:
        if a not in ids or b not in ids:
            raise ValueError(f"Unknown guest referenced in keep_separate: {a}, {b}")
    return guests, SeatingPreferences(keep_separate=pairs)


def load_tables(path: Source) -> List[Table]:
    """Load table definitions; missing ids default to ``table_<row>``."""
    df = pd.read_csv(path)
    tables: List[Table] = []
    for index, row in df.iterrows():
        tables.append(
            Table(
                id=clean_text(row.get("id", "")) or f"table_{index + 1}",
                name=clean_text(row["name"]),
                capacity=parse_int(row["capacity"]),
                type=TableType(clean_text(row.get("type", "")) or TableType.ROUND.value),
                affinity=GenderAffinity(clean_text(row.get("gender", "")) or GenderAffinity.NONE.value),
                notes=clean_text(row.get("notes", "")),
            )
        )
    return tables


def load_all(guests_path: Source, tables_path: Optional[Source] = None):
    """Convenience wrapper returning guests, tables and preferences."""
    guests, preferences = load_guests(guests_path)
    tables = load_tables(tables_path) if tables_path is not None else []
    return guests, tables, preferences
