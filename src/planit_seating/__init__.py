"""PlanIt seating package."""
from .models import Guest, Table, SeatKey, Partition, Roster, SyncSettings
from .state import SeatingState
from .csv_loader import load_guests, load_tables, load_all
from .fingerprint import diff, snapshot
from .reconcile import ReconciliationEngine, apply_option
from .optimizer import optimize_tables
from .sync import SyncCoordinator, SyncPoller

__all__ = [
    "Guest",
    "Table",
    "SeatKey",
    "Partition",
    "Roster",
    "SyncSettings",
    "SeatingState",
    "load_guests",
    "load_tables",
    "load_all",
    "diff",
    "snapshot",
    "ReconciliationEngine",
    "apply_option",
    "optimize_tables",
    "SyncCoordinator",
    "SyncPoller",
]
