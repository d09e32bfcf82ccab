"""Actions reported by sync, optimizer and repair passes."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

from .models import Partition


class ActionKind(str, Enum):
    TABLE_CREATED = "table_created"
    GUEST_SEATED = "guest_seated"
    GUEST_REMOVED = "guest_removed"
    GUEST_NOT_SEATED = "guest_not_seated"
    GUEST_UPDATED = "guest_updated"
    GUEST_MOVED = "guest_moved"
    GUEST_UNASSIGNED = "guest_unassigned"
    ARRANGEMENT_OPTIMIZED = "arrangement_optimized"


@dataclass(frozen=True)
class SyncAction:
    kind: ActionKind
    guest_name: str = ""
    table_name: str = ""
    from_table: str = ""
    to_table: str = ""
    capacity: int = 0
    old_count: int = 0
    new_count: int = 0
    partition: Partition = Partition.UNIFIED

    def to_dict(self) -> Dict[str, object]:
        """Wire form using the keys hosts display."""
        out: Dict[str, object] = {"action": self.kind.value}
        if self.guest_name:
            out["guestName"] = self.guest_name
        if self.table_name:
            out["tableName"] = self.table_name
        if self.from_table:
            out["fromTable"] = self.from_table
        if self.to_table:
            out["toTable"] = self.to_table
        if self.kind is ActionKind.TABLE_CREATED:
            out["capacity"] = self.capacity
        if self.kind is ActionKind.GUEST_UPDATED:
            out["oldCount"] = self.old_count
            out["newCount"] = self.new_count
        if self.partition is not Partition.UNIFIED:
            out["partition"] = self.partition.value
        return out

    def describe(self) -> str:
        who = self.guest_name
        if self.partition is not Partition.UNIFIED:
            who = f"{who} ({self.partition.value})"
        kind = self.kind
        if kind is ActionKind.TABLE_CREATED:
            return f"Created {self.table_name} for {self.capacity} guests"
        if kind is ActionKind.GUEST_SEATED:
            return f"Seated {who} at {self.table_name}"
        if kind is ActionKind.GUEST_REMOVED:
            return f"Removed {who} from {self.table_name}"
        if kind is ActionKind.GUEST_NOT_SEATED:
            return f"{who} was not seated"
        if kind is ActionKind.GUEST_UPDATED:
            return f"Updated {who} at {self.table_name} ({self.old_count} -> {self.new_count})"
        if kind is ActionKind.GUEST_MOVED:
            return f"Moved {who} from {self.from_table} to {self.to_table}"
        if kind is ActionKind.GUEST_UNASSIGNED:
            if self.table_name:
                return f"Moved {who} from {self.table_name} to unassigned"
            return f"Left {who} unassigned"
        return "Optimized table arrangement"


def summarize_actions(actions: Sequence[SyncAction]) -> Dict[str, int]:
    """Count actions by kind, keeping first-seen order."""
    counts: Dict[str, int] = {}
    for action in actions:
        counts[action.kind.value] = counts.get(action.kind.value, 0) + 1
    return counts


def describe_actions(actions: Sequence[SyncAction]) -> List[str]:
    return [action.describe() for action in actions]
