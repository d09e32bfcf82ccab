"""Data models for PlanIt seating."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
import math

from . import config


def clean_text(value: object) -> str:
    """Return ``value`` as stripped text.

    ``None`` and the ``float('nan')`` pandas uses for missing cells become
    an empty string.
    """
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    text = str(value).strip()
    if text.lower() == "nan":
        return ""
    return text


def parse_pipe_list(value: object) -> List[str]:
    """Split a pipe separated string into a list."""
    text = clean_text(value)
    if not text:
        return []
    return [part.strip() for part in text.split("|") if part.strip()]


def parse_int(value: object, default: int = 0) -> int:
    """Parse integers from CSV cells, tolerating ``2.0`` and blanks."""
    text = clean_text(value)
    if not text:
        return default
    return int(float(text))


class Partition(str, Enum):
    UNIFIED = "unified"
    MALE = "male"
    FEMALE = "female"


class TableType(str, Enum):
    ROUND = "round"
    SQUARE = "square"
    RECTANGULAR = "rectangular"


class GenderAffinity(str, Enum):
    NONE = "none"
    MALE = "male"
    FEMALE = "female"


CONFIRMED = "confirmed"
BUILTIN_GROUPS = {
    "family": "Family",
    "friends": "Friends",
    "work": "Work",
    "other": "Other",
}


@dataclass(frozen=True)
class SeatKey:
    """The unit placed at a table: a guest id plus its arrangement partition."""

    guest_id: str
    partition: Partition = Partition.UNIFIED

    @property
    def label(self) -> str:
        if self.partition is Partition.UNIFIED:
            return self.guest_id
        return f"{self.guest_id} ({self.partition.value})"


@dataclass
class Guest:
    """A guest party as delivered by the roster service."""

    id: str
    first_name: str = ""
    last_name: str = ""
    group: str = "other"
    custom_group: str = ""
    rsvp_status: str = "pending"
    attending_count: int = 1
    male_count: int = 0
    female_count: int = 0

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_group(self) -> str:
        """``custom_group`` wins over ``group`` when present."""
        return self.custom_group or self.group or "other"

    @property
    def is_confirmed(self) -> bool:
        return self.rsvp_status == CONFIRMED

    def seat_size(self, partition: Partition) -> int:
        if partition is Partition.MALE:
            return max(self.male_count, 0)
        if partition is Partition.FEMALE:
            return max(self.female_count, 0)
        return max(self.attending_count, 1)

    def seat_keys(self, separated: bool) -> List[SeatKey]:
        if not separated:
            return [SeatKey(self.id)]
        keys = []
        if self.male_count > 0:
            keys.append(SeatKey(self.id, Partition.MALE))
        if self.female_count > 0:
            keys.append(SeatKey(self.id, Partition.FEMALE))
        return keys


@dataclass
class Table:
    """Dinner table definition."""

    id: str
    name: str
    capacity: int
    type: TableType = TableType.ROUND
    affinity: GenderAffinity = GenderAffinity.NONE
    position: Tuple[float, float] = (0.0, 0.0)
    rotation: int = 0
    notes: str = ""
    auto_created: bool = False

    def accepts(self, partition: Partition) -> bool:
        if self.affinity is GenderAffinity.NONE:
            return True
        return self.affinity.value == partition.value


@dataclass
class SeatingPreferences:
    """Planner preferences honoured by automatic placement."""

    allow_group_mixing: bool = True
    keep_separate: List[Tuple[str, str]] = field(default_factory=list)
    group_together: Dict[str, List[str]] = field(default_factory=dict)
    special_requests: Dict[str, str] = field(default_factory=dict)

    def separated_from(self, guest_id: str) -> set[str]:
        out = set()
        for a, b in self.keep_separate:
            if a == guest_id:
                out.add(b)
            elif b == guest_id:
                out.add(a)
        return out


@dataclass
class LayoutSettings:
    canvas_scale: float = 1.0
    canvas_offset: Tuple[float, float] = (0.0, 0.0)


@dataclass
class SyncSettings:
    """Per-event switches for roster synchronization.

    ``preferred_table_size`` is the smallest capacity given to a table the
    sync creates; larger parties still get ``ceil(size * 1.5)`` seats.
    """

    auto_sync_enabled: bool = True
    sync_on_rsvp_change: bool = True
    sync_on_attending_count_change: bool = True
    auto_create_tables: bool = True
    auto_optimize_tables: bool = True
    preferred_table_size: int = config.MIN_SYNC_TABLE_SIZE


class Roster:
    """Point-in-time view of the guest list used by every seating operation."""

    def __init__(self, guests: Iterable[Guest], separated: bool = False) -> None:
        self.guests: List[Guest] = list(guests)
        self.separated = separated
        self._by_id: Dict[str, Guest] = {g.id: g for g in self.guests}

    def get(self, guest_id: str) -> Optional[Guest]:
        return self._by_id.get(guest_id)

    @property
    def confirmed(self) -> List[Guest]:
        return [g for g in self.guests if g.is_confirmed]

    def entities(self) -> List[SeatKey]:
        """All seatable keys, in roster order."""
        keys: List[SeatKey] = []
        for guest in self.confirmed:
            keys.extend(guest.seat_keys(self.separated))
        return keys

    def is_seatable(self, key: SeatKey) -> bool:
        guest = self.get(key.guest_id)
        if guest is None or not guest.is_confirmed:
            return False
        return key in guest.seat_keys(self.separated)

    def size_of(self, key: SeatKey) -> int:
        """Effective size of a seated key; unknown guests occupy nothing."""
        guest = self.get(key.guest_id)
        if guest is None:
            return 0
        return guest.seat_size(key.partition)

    def name_of(self, guest_id: str, default: str = config.UNKNOWN_GUEST) -> str:
        guest = self.get(guest_id)
        if guest is None or not guest.full_name:
            return default
        return guest.full_name

    def group_of(self, guest_id: str) -> str:
        guest = self.get(guest_id)
        return guest.display_group if guest else "other"
