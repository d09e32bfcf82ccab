"""Streamlit planner page for PlanIt seating with CSV uploads and roster sync."""
from __future__ import annotations

# Add src to sys.path so planit_seating can be found
import sys
import os
import io
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))

import pandas as pd
import streamlit as st

from planit_seating.csv_loader import load_guests, load_tables
from planit_seating.errors import SeatingError
from planit_seating.export import export_seating
from planit_seating.models import GenderAffinity, SeatKey, TableType
from planit_seating.scheduling import ManualScheduler
from planit_seating.services import InMemoryPlanItStore
from planit_seating.state import SeatingState
from planit_seating.serialization import state_to_payload
from planit_seating.stats import compute_statistics, compute_table_stats
from planit_seating.sync import SyncCoordinator, SyncOutcome
from planit_seating.validation import validate_arrangement

EVENT_ID = "streamlit"

# -----------------------------
# Helpers
# -----------------------------

def uploadedfile_to_df(uploaded_file) -> pd.DataFrame | None:
    """Read a Streamlit UploadedFile or file-like object into a DataFrame."""
    if uploaded_file is None:
        return None
    if hasattr(uploaded_file, "read"):
        uploaded_file.seek(0)
        return pd.read_csv(io.StringIO(uploaded_file.read().decode("utf-8")), dtype={"id": str})
    return pd.read_csv(uploaded_file, dtype={"id": str})

def df_to_csvio(df: pd.DataFrame) -> io.StringIO:
    """Serialize a DataFrame to a StringIO CSV buffer positioned at start."""
    buf = io.StringIO()
    df.to_csv(buf, index=False)
    buf.seek(0)
    return buf

def validate_columns(df: pd.DataFrame, required: list[str], file_label: str) -> bool:
    """Check required columns and show an error if any are missing."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        st.error(f"Error in {file_label}: missing columns: {', '.join(missing)}")
        return False
    return True

def start_session(guests_df: pd.DataFrame, tables_df: pd.DataFrame | None, separated: bool) -> SyncCoordinator:
    """Build an in-memory store and a coordinator around the uploaded data."""
    guests, preferences = load_guests(df_to_csvio(guests_df))
    tables = load_tables(df_to_csvio(tables_df)) if tables_df is not None else []
    state = SeatingState(tables=tables, separated=separated, preferences=preferences)
    store = InMemoryPlanItStore(guests, state_to_payload(state))
    coordinator = SyncCoordinator(EVENT_ID, store, store, ManualScheduler(), status_service=store)
    coordinator.load()
    return coordinator

def run_edit(action, *args, **kwargs) -> None:
    """Apply an edit and surface rejected edits as errors."""
    try:
        action(*args, **kwargs)
    except SeatingError as e:
        st.error(str(e))

# -----------------------------
# Sidebar options
# -----------------------------

st.sidebar.header("Seating Options")
separated = st.sidebar.checkbox(
    "Separate seating for men and women",
    value=False,
    help="Mixed parties are split into a male and a female seating entity.",
)
allow_group_mixing = st.sidebar.checkbox(
    "Allow mixing groups at a table",
    value=True,
    help="When off, automatic placement keeps every table to a single group.",
)

# -----------------------------
# Main UI and previews
# -----------------------------

st.title("PlanIt Seating")

_guests_file = st.file_uploader("Guests CSV", type="csv")
_tables_file = st.file_uploader("Tables CSV (optional)", type="csv")

guests_df = uploadedfile_to_df(_guests_file)
tables_df = uploadedfile_to_df(_tables_file)

if guests_df is not None:
    st.subheader("Guests preview")
    st.dataframe(guests_df, use_container_width=True)
if tables_df is not None:
    st.subheader("Tables preview")
    st.dataframe(tables_df, use_container_width=True)

inputs_ok = guests_df is not None and validate_columns(guests_df, ["id", "first_name", "rsvp_status"], "guests.csv")
if tables_df is not None:
    inputs_ok = inputs_ok and validate_columns(tables_df, ["name", "capacity"], "tables.csv")

if st.button("Start planning", disabled=not inputs_ok, key="start_button"):
    try:
        st.session_state["coordinator"] = start_session(guests_df, tables_df, separated)
    except ValueError as e:
        st.error(f"Input validation error: {e}")
        st.stop()

coordinator: SyncCoordinator | None = st.session_state.get("coordinator")
if coordinator is None:
    st.stop()

coordinator.state.preferences.allow_group_mixing = allow_group_mixing
roster = coordinator.roster

# -----------------------------
# Tables
# -----------------------------

st.subheader("Tables")
with st.form("add_table"):
    cols = st.columns(3)
    table_type = cols[0].selectbox("Type", [t.value for t in TableType])
    capacity = cols[1].number_input("Capacity", min_value=4, max_value=30, value=10)
    affinity = cols[2].selectbox("Gender", [a.value for a in GenderAffinity])
    if st.form_submit_button("Add table"):
        run_edit(coordinator.add_table, TableType(table_type), int(capacity), (0.0, 0.0), GenderAffinity(affinity))

table_stats = compute_table_stats(coordinator.state, roster)
if table_stats:
    st.dataframe(
        pd.DataFrame(table_stats).drop(columns=["table_id"]),
        use_container_width=True,
    )

tables_by_name = {t.name: t.id for t in coordinator.state.tables}
seated = coordinator.state.seated_keys()
unassigned = [k for k in roster.entities() if k not in seated]
labels = {k.label: k for k in roster.entities()}

# -----------------------------
# Seat, unseat and delete
# -----------------------------

st.subheader("Assign guests")
if unassigned and tables_by_name:
    cols = st.columns(2)
    guest_label = cols[0].selectbox(
        "Unassigned guest",
        [k.label for k in unassigned],
        format_func=lambda label: f"{roster.name_of(labels[label].guest_id)} ({label})",
    )
    table_name = cols[1].selectbox("Table", list(tables_by_name))
    if st.button("Seat guest"):
        run_edit(coordinator.seat, labels[guest_label], tables_by_name[table_name])

if seated:
    seated_label = st.selectbox("Seated guest", sorted(k.label for k in seated))
    if st.button("Unseat guest"):
        key = labels.get(seated_label) or SeatKey(seated_label)
        run_edit(coordinator.unseat, key)

if tables_by_name:
    doomed = st.selectbox("Table to delete", list(tables_by_name))
    if st.button("Delete table"):
        run_edit(coordinator.delete_table, tables_by_name[doomed])

if st.button("Clear all"):
    coordinator.clear_all()

# -----------------------------
# Roster sync
# -----------------------------

st.subheader("Guest list sync")
with st.expander("Sync settings"):
    current = coordinator.state.sync_settings
    with st.form("sync_settings"):
        auto_sync = st.checkbox("Sync automatically", value=current.auto_sync_enabled)
        on_rsvp = st.checkbox("React to RSVP changes", value=current.sync_on_rsvp_change)
        on_count = st.checkbox("React to party size changes", value=current.sync_on_attending_count_change)
        create = st.checkbox("Create tables when needed", value=current.auto_create_tables)
        optimize = st.checkbox("Merge nearly empty tables", value=current.auto_optimize_tables)
        preferred = st.number_input(
            "Preferred new table size", min_value=4, max_value=30, value=min(max(current.preferred_table_size, 4), 30)
        )
        if st.form_submit_button("Save settings"):
            coordinator.update_sync_settings(
                auto_sync_enabled=auto_sync,
                sync_on_rsvp_change=on_rsvp,
                sync_on_attending_count_change=on_count,
                auto_create_tables=create,
                auto_optimize_tables=optimize,
                preferred_table_size=int(preferred),
            )
    st.caption(
        "Syncs: {totalSyncs} total, {successfulSyncs} succeeded, {failedSyncs} failed".format(
            **coordinator.stats.to_dict()
        )
    )

_roster_file = st.file_uploader("Updated guests CSV", type="csv", key="roster_update")
if st.button("Sync now", disabled=_roster_file is None):
    updated, _ = load_guests(df_to_csvio(uploadedfile_to_df(_roster_file)))
    store = coordinator.roster_service
    store.guests = {g.id: g for g in updated}
    outcome = coordinator.sync()
    if outcome is SyncOutcome.APPLIED:
        for action in coordinator.last_actions:
            st.write(action.describe())
    else:
        st.info(f"Sync: {outcome.value}")

if coordinator.pending is not None:
    st.warning("These guest changes can be handled more than one way. Pick an option.")
    for option in coordinator.pending.options:
        st.markdown(f"**{option.strategy.value.title()}**: {option.description}")
        if st.button(f"Apply {option.strategy.value}", key=option.id):
            coordinator.choose_option(option.id)
    names = ", ".join(g.name for g in coordinator.pending.affected_guests)
    if st.button(f"Move affected guests to unassigned ({names})"):
        coordinator.move_affected_to_unassigned()
    if st.button("Dismiss"):
        coordinator.dismiss()

# -----------------------------
# Status and export
# -----------------------------

coordinator.autosaver.flush()
totals = compute_statistics(coordinator.state, roster)
st.subheader("Summary")
st.json(totals)
for issue in validate_arrangement(coordinator.state, roster):
    st.error(issue.message)

st.download_button(
    "Download seating as CSV",
    export_seating(coordinator.state, roster, "csv").encode("utf-8"),
    file_name="seating.csv",
)
st.download_button(
    "Download seating as JSON",
    export_seating(coordinator.state, roster, "json").encode("utf-8"),
    file_name="seating.json",
)
