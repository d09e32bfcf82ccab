"""Seating session: in-memory state, autosave and roster synchronization.

The coordinator owns the current ``SeatingState``. Manual edits and applied
sync results replace it synchronously and schedule an autosave. Roster syncs
run either on demand or from ``SyncPoller``; a busy flag turns overlapping
runs into no-ops.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import config, operations
from .actions import SyncAction
from .autosave import AutoSaver
from .errors import AuthorizationError, OptionNotFound, TransientServiceError
from .fingerprint import GuestChange, GuestFingerprint, diff, snapshot
from .models import GenderAffinity, Roster, SeatKey, SyncSettings, Table, TableType
from .reconcile import ReconcileResult, ReconciliationEngine, apply_option, find_option
from .scheduling import Scheduler, TimerHandle
from .serialization import state_from_payload
from .services import PersistenceService, RosterService, SyncStatusService
from .state import SeatingState

logger = logging.getLogger(__name__)


class SyncOutcome(str, Enum):
    SKIPPED = "skipped"
    BASELINE = "baseline"
    NO_CHANGES = "no_changes"
    APPLIED = "applied"
    DECISION_REQUIRED = "decision_required"


@dataclass
class SyncStats:
    total_syncs: int = 0
    successful_syncs: int = 0
    failed_syncs: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalSyncs": self.total_syncs,
            "successfulSyncs": self.successful_syncs,
            "failedSyncs": self.failed_syncs,
        }


class SyncCoordinator:
    def __init__(
        self,
        event_id: str,
        roster_service: RosterService,
        persistence: PersistenceService,
        scheduler: Scheduler,
        status_service: Optional[SyncStatusService] = None,
        engine: Optional[ReconciliationEngine] = None,
        autosave_delay: Optional[float] = None,
    ) -> None:
        self.event_id = event_id
        self.roster_service = roster_service
        self.persistence = persistence
        self.status_service = status_service
        self.engine = engine or ReconciliationEngine()
        self.autosaver = AutoSaver(self._save, scheduler, delay=autosave_delay)
        self.state = SeatingState()
        self.roster = Roster([])
        self.busy = False
        self.pending: Optional[ReconcileResult] = None
        self.pending_triggers = 0
        self.last_actions: List[SyncAction] = []
        self.stats = SyncStats()
        self._pending_fingerprint: Optional[List[GuestFingerprint]] = None
        self._pending_changes: List[GuestChange] = []
        self._pending_base: Optional[SeatingState] = None

    def _save(self, payload: Dict[str, Any]) -> None:
        self.persistence.save_arrangement(self.event_id, payload)

    def _capture(self, guests) -> List[GuestFingerprint]:
        return snapshot(guests, confirmed_only=False)

    def update(self, state: SeatingState) -> SeatingState:
        self.state = state
        self.autosaver.schedule(state)
        return state

    # ----------------------------- session -----------------------------
    def load(self) -> SeatingState:
        """Load saved seating and the roster; the first load sets the sync baseline."""
        self.state = state_from_payload(self.persistence.load_arrangement(self.event_id))
        guests = self.roster_service.list_guests(self.event_id)
        self.roster = Roster(guests, separated=self.state.separated)
        if self.state.fingerprint is None:
            self.state.fingerprint = self._capture(guests)
            logger.info("Captured sync baseline of %d guest(s)", len(self.state.fingerprint))
        return self.state

    # ----------------------------- manual edits -----------------------------
    def seat(self, key: SeatKey, table_id: str) -> SeatingState:
        return self.update(operations.seat(self.state, self.roster, key, table_id))

    def unseat(self, key: SeatKey) -> SeatingState:
        return self.update(operations.unseat(self.state, self.roster, key))

    def add_table(
        self,
        table_type: TableType = TableType.ROUND,
        capacity: int = config.DEFAULT_TABLE_CAPACITY,
        position: Tuple[float, float] = (0.0, 0.0),
        affinity: GenderAffinity = GenderAffinity.NONE,
    ) -> Table:
        state, table = operations.add_table(self.state, table_type, capacity, position, affinity)
        self.update(state)
        return table

    def update_table(self, table_id: str, **patch) -> SeatingState:
        return self.update(operations.update_table(self.state, self.roster, table_id, **patch))

    def delete_table(self, table_id: str) -> SeatingState:
        return self.update(operations.delete_table(self.state, table_id))

    def update_sync_settings(self, **changes) -> SyncSettings:
        """Change sync switches, e.g. ``update_sync_settings(auto_create_tables=False)``."""
        state = self.state.clone()
        state.sync_settings = replace(state.sync_settings, **changes)
        self.update(state)
        return state.sync_settings

    def clear_all(self) -> SeatingState:
        self._resolve()
        return self.update(operations.clear_all(self.state))

    # ----------------------------- sync -----------------------------
    def poll(self) -> SyncOutcome:
        """Periodic entry point; reconciles only when the backend reports pending triggers."""
        if not self.state.sync_settings.auto_sync_enabled:
            return SyncOutcome.SKIPPED
        if self.status_service is not None and not self.busy:
            status = self.status_service.get_sync_status(self.event_id)
            self.pending_triggers = status.get("pendingTriggers", 0)
            if not status.get("syncRequired") and self.pending is None and self.state.fingerprint is not None:
                return SyncOutcome.NO_CHANGES
        return self.sync()

    def sync(self) -> SyncOutcome:
        """Fetch the roster and reconcile ``self.state`` against it."""
        if self.busy:
            logger.debug("Sync already running, skipped")
            return SyncOutcome.SKIPPED
        if self.pending is not None:
            return SyncOutcome.DECISION_REQUIRED

        self.busy = True
        self.stats.total_syncs += 1
        try:
            outcome = self._run_sync()
        except Exception:
            self.stats.failed_syncs += 1
            raise
        finally:
            self.busy = False
        self.stats.successful_syncs += 1
        return outcome

    def _run_sync(self) -> SyncOutcome:
        guests = self.roster_service.list_guests(self.event_id)
        self.roster = Roster(guests, separated=self.state.separated)
        current = self._capture(guests)
        if self.state.fingerprint is None:
            state = self.state.clone()
            state.fingerprint = current
            self.update(state)
            return SyncOutcome.BASELINE

        changes = diff(self.state.fingerprint, current, separated=self.state.separated)
        if not changes:
            return SyncOutcome.NO_CHANGES

        result = self.engine.reconcile(changes, self.state, self.roster)
        if result.requires_user_decision:
            self.pending = result
            self._pending_fingerprint = current
            self._pending_changes = changes
            self._pending_base = self.state
            logger.info("Sync needs a decision between %d option(s)", len(result.options))
            return SyncOutcome.DECISION_REQUIRED

        if not result.has_changes:
            # every detected change is switched off in the sync settings
            state = self.state.clone()
            state.fingerprint = current
            self.update(state)
            return SyncOutcome.NO_CHANGES

        state = result.state
        state.fingerprint = current
        self.last_actions = result.actions
        self.update(state)
        return SyncOutcome.APPLIED

    def choose_option(self, option_id: str, custom_arrangement=None) -> SeatingState:
        """Apply a pending option.

        Options are computed against the seating at detection time. When the
        planner edited the seating since, the chosen strategy is recomputed
        against the current state so those edits survive.
        """
        if self.pending is None:
            raise OptionNotFound(option_id)
        option = find_option(self.pending.options, option_id)
        if self.state is not self._pending_base:
            logger.info("Seating changed while a decision was pending, rebuilding %s option", option.strategy.value)
            option = self.engine.build_option(self._pending_changes, self.state, self.roster, option.strategy)
        state = apply_option(self.state, option, self.roster, custom_arrangement)
        state.fingerprint = self._pending_fingerprint
        self.last_actions = list(option.actions)
        self._resolve()
        return self.update(state)

    def move_affected_to_unassigned(self) -> SeatingState:
        if self.pending is None:
            return self.state
        guest_ids = [g.guest_id for g in self.pending.affected_guests]
        state, actions = operations.move_to_unassigned(self.state, self.roster, guest_ids)
        state.fingerprint = self._pending_fingerprint
        self.last_actions = actions
        self._resolve()
        return self.update(state)

    def dismiss(self) -> None:
        """Drop pending options; the baseline stays, so the next sync detects again."""
        self._resolve()

    def _resolve(self) -> None:
        self.pending = None
        self._pending_fingerprint = None
        self._pending_changes = []
        self._pending_base = None


class SyncPoller:
    """Run ``coordinator.poll`` every ``interval`` seconds until stopped."""

    def __init__(
        self,
        coordinator: SyncCoordinator,
        scheduler: Scheduler,
        interval: Optional[float] = None,
        on_auth_error: Optional[Callable[[AuthorizationError], None]] = None,
    ) -> None:
        self.coordinator = coordinator
        self.scheduler = scheduler
        self.interval = config.SYNC_POLL_INTERVAL_SECONDS if interval is None else interval
        self.on_auth_error = on_auth_error
        self.running = False
        self.outcomes: List[SyncOutcome] = []
        self._handle: Optional[TimerHandle] = None

    def start(self) -> None:
        self.running = True
        self._schedule()

    def stop(self) -> None:
        self.running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        self._handle = self.scheduler.call_later(self.interval, self._tick)

    def _tick(self) -> None:
        self._handle = None
        if not self.running:
            return
        try:
            self.outcomes.append(self.coordinator.poll())
        except AuthorizationError as e:
            logger.error("Sync polling stopped: %s", e)
            self.stop()
            if self.on_auth_error is not None:
                self.on_auth_error(e)
            return
        except TransientServiceError as e:
            logger.warning("Sync poll failed, retrying next cycle: %s", e)
        if self.running:
            self._schedule()
