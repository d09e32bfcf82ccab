"""
Guest-change reconciliation.

Given the changes detected between two roster fingerprints, the engine brings
the arrangement back in line with the roster:

    new / became confirmed     seat every entity, creating a table if needed
    no longer confirmed        unseat every entity
    removed                    unseat every entity
    attending count changed    update in place, or move to another table

The optimizer and the naming pass run afterwards. When a batch has no single
defensible outcome (several parties outgrow their tables at once, or a party
is larger than any allowed table) nothing is applied; the planner picks one
of the generated options instead.
"""
from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from . import config
from .actions import ActionKind, SyncAction, summarize_actions
from .errors import InvalidArrangement, OptionNotFound
from .fingerprint import (
    AttendingCountChanged,
    BecameConfirmed,
    GuestChange,
    GuestRemoved,
    NewConfirmed,
    NoLongerConfirmed,
)
from .models import Partition, Roster, SeatKey, SyncSettings, Table
from .naming import refresh_names
from .optimizer import optimize_tables
from .placement import best_fit, create_table_for, first_fit
from .state import SeatingState
from .stats import compute_statistics
from .validation import validate_arrangement

logger = logging.getLogger(__name__)


class SyncStrategy(str, Enum):
    AUTO = "auto"
    CONSERVATIVE = "conservative"
    OPTIMAL = "optimal"


@dataclass(frozen=True)
class PlacementPolicy:
    fit: Callable[..., Optional[Table]]
    create_tables: bool
    merge: bool


POLICIES: Dict[SyncStrategy, PlacementPolicy] = {
    SyncStrategy.AUTO: PlacementPolicy(first_fit, create_tables=True, merge=True),
    SyncStrategy.CONSERVATIVE: PlacementPolicy(first_fit, create_tables=False, merge=False),
    SyncStrategy.OPTIMAL: PlacementPolicy(best_fit, create_tables=True, merge=True),
}

_HEADLINES = {
    SyncStrategy.CONSERVATIVE: "Minimal disruption: keep existing tables, leave displaced guests unassigned",
    SyncStrategy.OPTIMAL: "Best fit: tightest tables first, create and merge tables as needed",
}

_DESCRIBED = [
    (ActionKind.GUEST_SEATED, "guest(s) seated"),
    (ActionKind.GUEST_REMOVED, "guest(s) removed"),
    (ActionKind.GUEST_MOVED, "guest(s) moved"),
    (ActionKind.GUEST_UPDATED, "guest(s) updated"),
    (ActionKind.GUEST_UNASSIGNED, "guest(s) left unassigned"),
    (ActionKind.TABLE_CREATED, "table(s) created"),
]


@dataclass(frozen=True)
class AffectedGuest:
    guest_id: str
    name: str
    change: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.guest_id, "name": self.name, "change": self.change}


@dataclass
class SyncOption:
    """A complete candidate arrangement offered to the planner."""

    id: str
    strategy: SyncStrategy
    description: str
    actions: List[SyncAction]
    state: SeatingState
    stats: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "strategy": self.strategy.value,
            "description": self.description,
            "actions": [a.to_dict() for a in self.actions],
            "stats": dict(self.stats),
        }


@dataclass
class ReconcileResult:
    state: SeatingState
    actions: List[SyncAction] = field(default_factory=list)
    requires_user_decision: bool = False
    options: List[SyncOption] = field(default_factory=list)
    affected_guests: List[AffectedGuest] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.actions) or self.requires_user_decision


def describe_option(strategy: SyncStrategy, actions: Sequence[SyncAction]) -> str:
    counts = summarize_actions(actions)
    parts = [f"{counts[kind.value]} {label}" for kind, label in _DESCRIBED if counts.get(kind.value)]
    headline = _HEADLINES.get(strategy, strategy.value)
    if not parts:
        return headline
    return f"{headline} ({', '.join(parts)})"


def relevant_changes(changes: Iterable[GuestChange], settings: SyncSettings) -> List[GuestChange]:
    """Drop the change kinds the event has switched off."""
    out: List[GuestChange] = []
    for change in changes:
        if isinstance(change, AttendingCountChanged):
            if settings.sync_on_attending_count_change:
                out.append(change)
        elif settings.sync_on_rsvp_change:
            out.append(change)
    return out


def affected_guests(changes: Iterable[GuestChange], roster: Roster) -> List[AffectedGuest]:
    """One entry per guest touched by ``changes``, first change wins."""
    seen: Dict[str, AffectedGuest] = {}
    for change in changes:
        if change.guest_id in seen:
            continue
        seen[change.guest_id] = AffectedGuest(
            change.guest_id,
            roster.name_of(change.guest_id, default=change.guest_name or config.UNKNOWN_GUEST),
            change.kind.value,
        )
    return list(seen.values())


class _Pass:
    """One reconciliation run over a private copy of the state."""

    def __init__(self, state: SeatingState, roster: Roster, policy: PlacementPolicy) -> None:
        self.state = state.clone()
        self.roster = roster
        self.policy = policy
        settings = state.sync_settings
        self.create_tables = policy.create_tables and settings.auto_create_tables
        self.merge = policy.merge and settings.auto_optimize_tables
        self.actions: List[SyncAction] = []
        self.displaced = 0
        self.unplaceable: List[SeatKey] = []

    def run(self, changes: Sequence[GuestChange]) -> "_Pass":
        for change in changes:
            if isinstance(change, (NewConfirmed, BecameConfirmed)):
                self.seat_guest(change)
            elif isinstance(change, (NoLongerConfirmed, GuestRemoved)):
                self.unseat_guest(change)
            elif isinstance(change, AttendingCountChanged):
                self.resize_guest(change)
        self.actions.extend(optimize_tables(self.state, self.roster, merge=self.merge))
        refresh_names(self.state, self.roster)
        return self

    def name_of(self, change: GuestChange) -> str:
        return self.roster.name_of(change.guest_id, default=change.guest_name or config.UNKNOWN_GUEST)

    # ----------------------------- change handlers -----------------------------
    def seat_guest(self, change: GuestChange) -> None:
        guest = self.roster.get(change.guest_id)
        if guest is None or not guest.is_confirmed:
            return
        name = self.name_of(change)
        for key in guest.seat_keys(self.roster.separated):
            if self.state.table_of(key) is None:
                self.place(key, name)

    def unseat_guest(self, change: GuestChange) -> None:
        name = self.name_of(change)
        seats = list(self.state.seats_of_guest(change.guest_id))
        if not seats:
            self.actions.append(SyncAction(ActionKind.GUEST_NOT_SEATED, guest_name=name))
            return
        for table_id, key in seats:
            self.state.remove(key)
            self.actions.append(
                SyncAction(
                    ActionKind.GUEST_REMOVED,
                    guest_name=name,
                    table_name=self.table_name(table_id),
                    partition=key.partition,
                )
            )

    def resize_guest(self, change: AttendingCountChanged) -> None:
        guest = self.roster.get(change.guest_id)
        if guest is None or not guest.is_confirmed:
            self.unseat_guest(change)
            return
        name = self.name_of(change)
        if self.roster.separated:
            partitions = [
                (Partition.MALE, change.old_male_count, change.new_male_count),
                (Partition.FEMALE, change.old_female_count, change.new_female_count),
            ]
            partitions = [p for p in partitions if p[1] != p[2]]
        else:
            partitions = [(Partition.UNIFIED, change.old_count, change.new_count)]

        for partition, old_count, new_count in partitions:
            key = SeatKey(guest.id, partition)
            size = self.roster.size_of(key)
            current = self.state.table_of(key)
            if size == 0:
                if current is not None:
                    self.state.remove(key)
                    self.actions.append(
                        SyncAction(
                            ActionKind.GUEST_REMOVED,
                            guest_name=name,
                            table_name=self.table_name(current),
                            partition=partition,
                        )
                    )
                continue
            if current is None:
                self.place(key, name)
                continue
            table = self.state.find_table(current)
            if table is None:
                self.state.remove(key)
                self.place(key, name)
                continue
            others = sum(self.roster.size_of(k) for k in self.state.seated(current) if k != key)
            if others + size <= table.capacity:
                self.actions.append(
                    SyncAction(
                        ActionKind.GUEST_UPDATED,
                        guest_name=name,
                        table_name=table.name,
                        old_count=old_count,
                        new_count=new_count,
                        partition=partition,
                    )
                )
                continue
            self.displaced += 1
            self.state.remove(key)
            self.place(key, name, source=table)

    # ----------------------------- placement -----------------------------
    def place(self, key: SeatKey, name: str, source: Optional[Table] = None) -> Optional[Table]:
        size = self.roster.size_of(key)
        exclude = [source.id] if source is not None else []
        table = self.policy.fit(self.state, self.roster, [key], exclude=exclude)
        if table is None and size > config.MAX_TABLE_CAPACITY:
            self.unplaceable.append(key)
        elif table is None and self.create_tables:
            table = create_table_for(self.state, size, key.partition)
            if table is not None:
                self.actions.append(
                    SyncAction(ActionKind.TABLE_CREATED, table_name=table.name, capacity=table.capacity)
                )
        if table is None:
            self.actions.append(
                SyncAction(
                    ActionKind.GUEST_UNASSIGNED,
                    guest_name=name,
                    table_name=source.name if source is not None else "",
                    partition=key.partition,
                )
            )
            return None

        self.state.place(key, table.id)
        if source is not None:
            self.actions.append(
                SyncAction(
                    ActionKind.GUEST_MOVED,
                    guest_name=name,
                    from_table=source.name,
                    to_table=table.name,
                    partition=key.partition,
                )
            )
        else:
            self.actions.append(
                SyncAction(ActionKind.GUEST_SEATED, guest_name=name, table_name=table.name, partition=key.partition)
            )
        return table

    def table_name(self, table_id: str) -> str:
        table = self.state.find_table(table_id)
        return table.name if table is not None else config.UNKNOWN_TABLE


class ReconciliationEngine:
    """Apply a change batch automatically, or escalate with options."""

    def __init__(self, displaced_threshold: Optional[int] = None) -> None:
        if displaced_threshold is None:
            displaced_threshold = config.AMBIGUITY_DISPLACED_THRESHOLD
        self.displaced_threshold = displaced_threshold

    def run(
        self,
        changes: Sequence[GuestChange],
        state: SeatingState,
        roster: Roster,
        strategy: SyncStrategy = SyncStrategy.AUTO,
    ) -> _Pass:
        changes = relevant_changes(changes, state.sync_settings)
        return _Pass(state, roster, POLICIES[strategy]).run(changes)

    def build_option(
        self, changes: Sequence[GuestChange], state: SeatingState, roster: Roster, strategy: SyncStrategy
    ) -> SyncOption:
        result = self.run(changes, state, roster, strategy)
        return SyncOption(
            id=f"{strategy.value}_{uuid.uuid4().hex[:8]}",
            strategy=strategy,
            description=describe_option(strategy, result.actions),
            actions=result.actions,
            state=result.state,
            stats=compute_statistics(result.state, roster),
        )

    def reconcile(self, changes: Sequence[GuestChange], state: SeatingState, roster: Roster) -> ReconcileResult:
        """Reconcile ``state`` with ``changes``; ``state`` itself is never mutated."""
        changes = relevant_changes(changes, state.sync_settings)
        if not changes:
            return ReconcileResult(state=state)

        auto = self.run(changes, state, roster)
        if auto.displaced < self.displaced_threshold and not auto.unplaceable:
            logger.info("Reconciled %d change(s) with %d action(s)", len(changes), len(auto.actions))
            return ReconcileResult(state=auto.state, actions=auto.actions)

        logger.info(
            "Reconciliation needs a decision: %d displaced, %d unplaceable",
            auto.displaced,
            len(auto.unplaceable),
        )
        options = [
            self.build_option(changes, state, roster, strategy)
            for strategy in (SyncStrategy.CONSERVATIVE, SyncStrategy.OPTIMAL)
        ]
        return ReconcileResult(
            state=state,
            requires_user_decision=True,
            options=options,
            affected_guests=affected_guests(changes, roster),
        )


def find_option(options: Sequence[SyncOption], option_id: str) -> SyncOption:
    for option in options:
        if option.id == option_id:
            return option
    raise OptionNotFound(option_id)


def apply_option(
    state: SeatingState,
    option: SyncOption,
    roster: Roster,
    custom_arrangement: Optional[Mapping[str, Sequence[SeatKey]]] = None,
) -> SeatingState:
    """Replace tables and arrangement with the option's in one step.

    A ``custom_arrangement`` is laid over the option's tables and must pass
    validation, otherwise ``InvalidArrangement`` is raised and nothing changes.
    """
    new_state = state.clone()
    new_state.tables = copy.deepcopy(option.state.tables)
    new_state.arrangement = copy.deepcopy(option.state.arrangement)
    table_ids = {t.id for t in new_state.tables}
    new_state.manual_names = {t for t in option.state.manual_names if t in table_ids}

    if custom_arrangement is not None:
        new_state.arrangement = {tid: list(keys) for tid, keys in custom_arrangement.items() if keys}
        issues = validate_arrangement(new_state, roster)
        if issues:
            raise InvalidArrangement(issues)
        refresh_names(new_state, roster)
    logger.info("Applied %s sync option %s", option.strategy.value, option.id)
    return new_state
