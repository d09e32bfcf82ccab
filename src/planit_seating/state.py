"""The seating aggregate: tables, arrangement, naming marks and sync baseline."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .errors import TableNotFound
from .fingerprint import GuestFingerprint
from .models import LayoutSettings, Roster, SeatKey, SeatingPreferences, SyncSettings, Table


@dataclass
class SeatingState:
    tables: List[Table] = field(default_factory=list)
    arrangement: Dict[str, List[SeatKey]] = field(default_factory=dict)
    separated: bool = False
    manual_names: Set[str] = field(default_factory=set)
    preferences: SeatingPreferences = field(default_factory=SeatingPreferences)
    layout: LayoutSettings = field(default_factory=LayoutSettings)
    sync_settings: SyncSettings = field(default_factory=SyncSettings)
    fingerprint: Optional[List[GuestFingerprint]] = None

    def clone(self) -> "SeatingState":
        return copy.deepcopy(self)

    # ----------------------------- lookups -----------------------------
    def find_table(self, table_id: str) -> Optional[Table]:
        return next((t for t in self.tables if t.id == table_id), None)

    def table(self, table_id: str) -> Table:
        table = self.find_table(table_id)
        if table is None:
            raise TableNotFound(table_id)
        return table

    def seated(self, table_id: str) -> List[SeatKey]:
        return self.arrangement.get(table_id, [])

    def table_of(self, key: SeatKey) -> Optional[str]:
        for table_id, keys in self.arrangement.items():
            if key in keys:
                return table_id
        return None

    def seats_of_guest(self, guest_id: str) -> Iterator[Tuple[str, SeatKey]]:
        for table_id, keys in list(self.arrangement.items()):
            for key in list(keys):
                if key.guest_id == guest_id:
                    yield table_id, key

    def seated_keys(self) -> Set[SeatKey]:
        return {key for keys in self.arrangement.values() for key in keys}

    def occupancy(self, table_id: str, roster: Roster) -> int:
        return sum(roster.size_of(key) for key in self.seated(table_id))

    def free_seats(self, table_id: str, roster: Roster) -> int:
        return self.table(table_id).capacity - self.occupancy(table_id, roster)

    # ----------------------------- raw mutations -----------------------------
    # These work in place and are only used on private working copies.
    def place(self, key: SeatKey, table_id: str) -> Optional[str]:
        """Seat ``key`` at ``table_id`` keeping exclusivity; return the vacated table id."""
        vacated = self.remove(key)
        self.arrangement.setdefault(table_id, []).append(key)
        return vacated

    def remove(self, key: SeatKey) -> Optional[str]:
        for table_id, keys in list(self.arrangement.items()):
            if key in keys:
                keys.remove(key)
                if not keys:
                    del self.arrangement[table_id]
                return table_id
        return None

    def drop_table(self, table_id: str) -> List[SeatKey]:
        self.tables = [t for t in self.tables if t.id != table_id]
        self.manual_names.discard(table_id)
        return self.arrangement.pop(table_id, [])
