"""Conversion between ``SeatingState`` and the JSON payload the backend stores."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .fingerprint import GuestFingerprint
from .models import (
    GenderAffinity,
    Guest,
    LayoutSettings,
    Partition,
    SeatKey,
    SeatingPreferences,
    SyncSettings,
    Table,
    TableType,
    clean_text,
    parse_int,
)
from .state import SeatingState


def _point(value: Any) -> tuple:
    if isinstance(value, Mapping):
        return (float(value.get("x", 0) or 0), float(value.get("y", 0) or 0))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return (float(value[0]), float(value[1]))
    return (0.0, 0.0)


def key_to_payload(key: SeatKey) -> Dict[str, str]:
    return {"guestId": key.guest_id, "partition": key.partition.value}


def key_from_payload(value: Any) -> SeatKey:
    """Structured keys only; a bare id is a unified-mode key."""
    if isinstance(value, Mapping):
        return SeatKey(str(value["guestId"]), Partition(value.get("partition") or Partition.UNIFIED.value))
    return SeatKey(str(value))


def table_to_payload(table: Table) -> Dict[str, Any]:
    return {
        "id": table.id,
        "name": table.name,
        "type": table.type.value,
        "capacity": table.capacity,
        "gender": table.affinity.value,
        "position": {"x": table.position[0], "y": table.position[1]},
        "rotation": table.rotation,
        "notes": table.notes,
        "autoCreated": table.auto_created,
    }


def table_from_payload(data: Mapping[str, Any]) -> Table:
    return Table(
        id=str(data["id"]),
        name=clean_text(data.get("name")),
        capacity=parse_int(data.get("capacity"), default=0),
        type=TableType(data.get("type") or TableType.ROUND.value),
        affinity=GenderAffinity(data.get("gender") or GenderAffinity.NONE.value),
        position=_point(data.get("position")),
        rotation=parse_int(data.get("rotation"), default=0),
        notes=clean_text(data.get("notes")),
        auto_created=bool(data.get("autoCreated", False)),
    )


def fingerprint_to_payload(fp: GuestFingerprint) -> Dict[str, Any]:
    return {
        "id": fp.id,
        "status": fp.status,
        "attendingCount": fp.attending_count,
        "firstName": fp.first_name,
        "lastName": fp.last_name,
        "group": fp.group,
        "maleCount": fp.male_count,
        "femaleCount": fp.female_count,
    }


def fingerprint_from_payload(data: Mapping[str, Any]) -> GuestFingerprint:
    return GuestFingerprint(
        id=str(data["id"]),
        status=clean_text(data.get("status")),
        attending_count=parse_int(data.get("attendingCount"), default=1),
        first_name=clean_text(data.get("firstName")),
        last_name=clean_text(data.get("lastName")),
        group=clean_text(data.get("group")) or "other",
        male_count=parse_int(data.get("maleCount")),
        female_count=parse_int(data.get("femaleCount")),
    )


def guest_from_payload(data: Mapping[str, Any]) -> Guest:
    """Build a ``Guest`` from the roster service's JSON record."""
    return Guest(
        id=str(data.get("_id") or data["id"]),
        first_name=clean_text(data.get("firstName")),
        last_name=clean_text(data.get("lastName")),
        group=clean_text(data.get("group")) or "other",
        custom_group=clean_text(data.get("customGroup")),
        rsvp_status=clean_text(data.get("rsvpStatus")) or "pending",
        attending_count=parse_int(data.get("attendingCount"), default=1),
        male_count=parse_int(data.get("maleCount")),
        female_count=parse_int(data.get("femaleCount")),
    )


def guest_to_payload(guest: Guest) -> Dict[str, Any]:
    return {
        "id": guest.id,
        "firstName": guest.first_name,
        "lastName": guest.last_name,
        "group": guest.group,
        "customGroup": guest.custom_group,
        "rsvpStatus": guest.rsvp_status,
        "attendingCount": guest.attending_count,
        "maleCount": guest.male_count,
        "femaleCount": guest.female_count,
    }


def preferences_to_payload(prefs: SeatingPreferences) -> Dict[str, Any]:
    return {
        "allowGroupMixing": prefs.allow_group_mixing,
        "keepSeparate": [list(pair) for pair in prefs.keep_separate],
        "groupTogether": {name: list(ids) for name, ids in prefs.group_together.items()},
        "specialRequests": dict(prefs.special_requests),
    }


def preferences_from_payload(data: Optional[Mapping[str, Any]]) -> SeatingPreferences:
    data = data or {}
    return SeatingPreferences(
        allow_group_mixing=bool(data.get("allowGroupMixing", True)),
        keep_separate=[(str(a), str(b)) for a, b in data.get("keepSeparate") or []],
        group_together={str(k): [str(i) for i in v] for k, v in (data.get("groupTogether") or {}).items()},
        special_requests={str(k): str(v) for k, v in (data.get("specialRequests") or {}).items()},
    )


def sync_settings_to_payload(settings: SyncSettings) -> Dict[str, Any]:
    return {
        "autoSyncEnabled": settings.auto_sync_enabled,
        "syncOnRsvpChange": settings.sync_on_rsvp_change,
        "syncOnAttendingCountChange": settings.sync_on_attending_count_change,
        "autoCreateTables": settings.auto_create_tables,
        "autoOptimizeTables": settings.auto_optimize_tables,
        "preferredTableSize": settings.preferred_table_size,
    }


def sync_settings_from_payload(data: Optional[Mapping[str, Any]]) -> SyncSettings:
    """Missing switches default to on, a missing size to the default minimum."""
    data = data or {}
    defaults = SyncSettings()
    return SyncSettings(
        auto_sync_enabled=bool(data.get("autoSyncEnabled", True)),
        sync_on_rsvp_change=bool(data.get("syncOnRsvpChange", True)),
        sync_on_attending_count_change=bool(data.get("syncOnAttendingCountChange", True)),
        auto_create_tables=bool(data.get("autoCreateTables", True)),
        auto_optimize_tables=bool(data.get("autoOptimizeTables", True)),
        preferred_table_size=parse_int(data.get("preferredTableSize"), default=defaults.preferred_table_size)
        or defaults.preferred_table_size,
    )


def state_to_payload(state: SeatingState) -> Dict[str, Any]:
    return {
        "tables": [table_to_payload(t) for t in state.tables],
        "arrangement": {
            table_id: [key_to_payload(k) for k in keys] for table_id, keys in state.arrangement.items()
        },
        "preferences": preferences_to_payload(state.preferences),
        "layoutSettings": {
            "canvasScale": state.layout.canvas_scale,
            "canvasOffset": {"x": state.layout.canvas_offset[0], "y": state.layout.canvas_offset[1]},
        },
        "syncSettings": sync_settings_to_payload(state.sync_settings),
        "isSeparatedSeating": state.separated,
        "manualNames": sorted(state.manual_names),
        "syncBaseline": (
            None if state.fingerprint is None else [fingerprint_to_payload(fp) for fp in state.fingerprint]
        ),
    }


def state_from_payload(payload: Optional[Mapping[str, Any]]) -> SeatingState:
    """Rebuild a state; an empty or missing payload is a valid empty state."""
    if not payload:
        return SeatingState()
    layout = payload.get("layoutSettings") or {}
    baseline = payload.get("syncBaseline")
    arrangement: Dict[str, List[SeatKey]] = {}
    for table_id, keys in (payload.get("arrangement") or {}).items():
        if keys:
            arrangement[str(table_id)] = [key_from_payload(k) for k in keys]
    return SeatingState(
        tables=[table_from_payload(t) for t in payload.get("tables") or []],
        arrangement=arrangement,
        separated=bool(payload.get("isSeparatedSeating", False)),
        manual_names=set(payload.get("manualNames") or []),
        preferences=preferences_from_payload(payload.get("preferences")),
        layout=LayoutSettings(
            canvas_scale=float(layout.get("canvasScale", 1.0)),
            canvas_offset=_point(layout.get("canvasOffset")),
        ),
        sync_settings=sync_settings_from_payload(payload.get("syncSettings")),
        fingerprint=None if baseline is None else [fingerprint_from_payload(fp) for fp in baseline],
    )


def guests_from_payload(records: Sequence[Mapping[str, Any]]) -> List[Guest]:
    return [guest_from_payload(r) for r in records]
