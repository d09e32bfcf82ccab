"""Command line interface for PlanIt seating."""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

from . import config
from .csv_loader import load_all
from .export import export_seating
from .models import Roster
from .scheduling import ManualScheduler
from .serialization import state_from_payload, state_to_payload
from .services import InMemoryPlanItStore
from .state import SeatingState
from .stats import compute_statistics, compute_table_stats
from .sync import SyncCoordinator, SyncOutcome
from .validation import validate_arrangement

EVENT_ID = "local"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PlanIt seating arrangement tools")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Logging level (default from PLANIT_LOG_LEVEL).")
    sub = parser.add_subparsers(dest="command", required=True)

    def common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--guests", required=True, help="Path to guests.csv")
        p.add_argument("--tables", help="Path to tables.csv, used when no saved state is given")
        p.add_argument("--state", type=Path, help="Saved seating JSON payload")
        p.add_argument("--separated", action="store_true", help="Seat men and women at separate tables.")

    report = sub.add_parser("report", help="Print table utilization and arrangement problems.")
    common(report)

    sync = sub.add_parser("sync", help="Reconcile the saved seating with the current guest list.")
    common(sync)
    sync.add_argument(
        "--resolve",
        choices=["conservative", "optimal", "unassigned"],
        help="How to settle a sync that needs a decision.",
    )
    sync.add_argument("--out", type=Path, help="Write the updated seating JSON here (default: --state).")

    export = sub.add_parser("export", help="Export the seating as JSON or CSV.")
    common(export)
    export.add_argument("--format", choices=["json", "csv"], default="json")
    export.add_argument("--out", type=Path, help="Write the export here instead of stdout.")
    return parser


def _load_session(args: argparse.Namespace):
    guests, tables, preferences = load_all(args.guests, args.tables)
    if args.state and args.state.exists():
        state = state_from_payload(json.loads(args.state.read_text()))
    else:
        state = SeatingState(tables=tables, preferences=preferences)
    if args.separated:
        state.separated = True
    return guests, state


def _report(args: argparse.Namespace) -> int:
    guests, state = _load_session(args)
    roster = Roster(guests, separated=state.separated)
    for s in compute_table_stats(state, roster):
        print(
            f"[REPORT] {s['table']} {s['occupancy']}/{s['capacity']} "
            f"util={s['utilization']:.1f}% group={s['dominant_group'] or '-'}"
        )
    totals = compute_statistics(state, roster)
    print(
        f"[TOTAL] tables={totals['total_tables']} seated={totals['seated_guests']} "
        f"unseated={totals['unseated_guests']} people={totals['seated_people']}/{totals['total_people']} "
        f"util={totals['utilization']:.1f}%"
    )
    issues = validate_arrangement(state, roster)
    for issue in issues:
        print(f"[ISSUE] {issue.kind}: {issue.message}")
    return 1 if issues else 0


def _sync(args: argparse.Namespace) -> int:
    guests, state = _load_session(args)
    store = InMemoryPlanItStore(guests, state_to_payload(state))
    coordinator = SyncCoordinator(EVENT_ID, store, store, ManualScheduler(), status_service=store)
    coordinator.load()
    outcome = coordinator.sync()

    if outcome is SyncOutcome.DECISION_REQUIRED:
        for option in coordinator.pending.options:
            print(f"[OPTION] {option.id} {option.description}")
        if args.resolve == "unassigned":
            coordinator.move_affected_to_unassigned()
        elif args.resolve:
            option = next(o for o in coordinator.pending.options if o.strategy.value == args.resolve)
            coordinator.choose_option(option.id)
        else:
            print("Sync needs a decision; rerun with --resolve")
            return 2

    for action in coordinator.last_actions:
        print(f"[SYNC] {action.describe()}")
    print(f"Sync {outcome.value}")

    out = args.out or args.state
    if out:
        coordinator.autosaver.flush()
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(state_to_payload(coordinator.state), indent=2))
    return 0


def _export(args: argparse.Namespace) -> int:
    guests, state = _load_session(args)
    text = export_seating(state, Roster(guests, separated=state.separated), args.format)
    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text)
    else:
        print(text)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by ``planit-seating`` and ``python -m planit_seating.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    handlers = {"report": _report, "sync": _sync, "export": _export}
    return handlers[args.command](args)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
