"""Seed an externally generated seating suggestion through the manual operations.

Suggestions get no special trust: every table goes through ``add_table`` and
every seat through ``seat``. Whatever those reject is reported back.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from .errors import SeatingError
from .models import Roster, TableType
from .operations import add_table, seat
from .serialization import key_from_payload
from .state import SeatingState

logger = logging.getLogger(__name__)


@dataclass
class SuggestionResult:
    state: SeatingState
    tables_created: int = 0
    seated: int = 0
    rejected: List[str] = field(default_factory=list)


def apply_suggestion(state: SeatingState, roster: Roster, suggestion: Mapping[str, Any]) -> SuggestionResult:
    result = SuggestionResult(state=state)

    for capacity, count in (suggestion.get("tableCounts") or {}).items():
        for _ in range(int(count)):
            _add(result, TableType.ROUND.value, int(capacity))

    id_map: Dict[str, str] = {}
    for table in suggestion.get("tables") or []:
        new_id = _add(result, table.get("type") or TableType.ROUND.value, int(table.get("capacity", 0)))
        if new_id is not None and table.get("id") is not None:
            id_map[str(table["id"])] = new_id

    for table_id, keys in (suggestion.get("arrangement") or {}).items():
        target = id_map.get(str(table_id), str(table_id))
        for raw in keys:
            try:
                key = key_from_payload(raw)
                result.state = seat(result.state, roster, key, target)
            except (SeatingError, KeyError, ValueError) as exc:
                result.rejected.append(str(exc))
                continue
            result.seated += 1

    logger.info(
        "Applied suggestion: %d table(s), %d seat(s), %d rejected",
        result.tables_created,
        result.seated,
        len(result.rejected),
    )
    return result


def _add(result: SuggestionResult, table_type: str, capacity: int):
    try:
        result.state, table = add_table(result.state, TableType(table_type), capacity)
    except (SeatingError, ValueError) as exc:
        result.rejected.append(str(exc))
        return None
    result.tables_created += 1
    return table.id
