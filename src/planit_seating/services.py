"""External collaborators: roster, persistence, sync status and suggestions.

``HttpPlanItClient`` talks to the PlanIt backend over HTTP. ``InMemoryPlanItStore``
keeps everything in process and backs the CLI, the Streamlit page and tests.
"""
from __future__ import annotations

import copy
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import httpx

from . import config
from .errors import AuthorizationError, TransientServiceError
from .fingerprint import diff, snapshot
from .models import Guest
from .serialization import fingerprint_from_payload, guests_from_payload

logger = logging.getLogger(__name__)


class RosterService(Protocol):
    def list_guests(self, event_id: str) -> List[Guest]:
        ...


class PersistenceService(Protocol):
    def load_arrangement(self, event_id: str) -> Dict[str, Any]:
        ...

    def save_arrangement(self, event_id: str, payload: Dict[str, Any]) -> None:
        ...


class SyncStatusService(Protocol):
    def get_sync_status(self, event_id: str) -> Dict[str, Any]:
        ...


class SuggestionService(Protocol):
    def suggest(self, event_id: str, preferences: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        ...


class HttpPlanItClient:
    """Thin wrapper around the PlanIt REST API.

    401/403 responses drop the token and raise ``AuthorizationError``; every
    other failure surfaces as ``TransientServiceError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or config.API_URL).rstrip("/")
        self.token = token if token is not None else (config.API_TOKEN or None)
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=config.HTTP_TIMEOUT if timeout is None else timeout,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, path: str, json: Any = None, allow_missing: bool = False) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            resp = self.client.request(method, path, json=json, headers=headers)
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransientServiceError(f"{method} {path} failed: {e}") from e

        if resp.status_code in (401, 403):
            self.token = None
            logger.error("%s %s rejected with HTTP %d", method, path, resp.status_code)
            raise AuthorizationError("Session expired or not authorized", status_code=resp.status_code)
        if allow_missing and resp.status_code == 404:
            return None
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("%s %s returned HTTP %d", method, path, resp.status_code)
            raise TransientServiceError(
                f"{method} {path} returned HTTP {resp.status_code}", status_code=resp.status_code
            ) from e
        if not resp.content:
            return {}
        return resp.json()

    # ----------------------------- roster -----------------------------
    def list_guests(self, event_id: str) -> List[Guest]:
        data = self._request("GET", f"/api/events/{event_id}/guests")
        records = data.get("guests", []) if isinstance(data, dict) else data
        return guests_from_payload(records or [])

    # ----------------------------- persistence -----------------------------
    def load_arrangement(self, event_id: str) -> Dict[str, Any]:
        """Saved seating, or ``{}`` when the event has none yet."""
        data = self._request("GET", f"/api/events/{event_id}/seating", allow_missing=True)
        if not data:
            return {}
        return data.get("seating", data)

    def save_arrangement(self, event_id: str, payload: Dict[str, Any]) -> None:
        self._request("PUT", f"/api/events/{event_id}/seating", json=payload)

    # ----------------------------- sync -----------------------------
    def get_sync_status(self, event_id: str) -> Dict[str, Any]:
        data = self._request("GET", f"/api/events/{event_id}/seating/sync/status")
        return {
            "syncRequired": bool(data.get("syncRequired", False)),
            "pendingTriggers": int(data.get("pendingTriggers", 0)),
        }

    def process_sync(self, event_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/api/events/{event_id}/seating/sync/process", json={})

    def apply_sync_option(
        self, event_id: str, option_id: str, custom_arrangement: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"optionId": option_id}
        if custom_arrangement is not None:
            body["customArrangement"] = custom_arrangement
        return self._request("POST", f"/api/events/{event_id}/seating/sync/apply-option", json=body)

    def move_to_unassigned(self, event_id: str, guest_ids: Sequence[str]) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/api/events/{event_id}/seating/sync/move-to-unassigned",
            json={"guestIds": list(guest_ids)},
        )

    # ----------------------------- suggestions -----------------------------
    def suggest(self, event_id: str, preferences: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self._request(
            "POST", f"/api/events/{event_id}/seating/ai-suggestions", json={"preferences": preferences or {}}
        )


class InMemoryPlanItStore:
    """Roster, saved seating and sync status kept in process."""

    def __init__(self, guests: Iterable[Guest] = (), payload: Optional[Dict[str, Any]] = None) -> None:
        self.guests: Dict[str, Guest] = {g.id: g for g in guests}
        self.payload: Dict[str, Any] = copy.deepcopy(payload) if payload else {}
        self.saves = 0
        self.fail_saves = False

    # roster
    def list_guests(self, event_id: str) -> List[Guest]:
        return [copy.copy(g) for g in self.guests.values()]

    def upsert_guest(self, guest: Guest) -> None:
        self.guests[guest.id] = guest

    def remove_guest(self, guest_id: str) -> None:
        self.guests.pop(guest_id, None)

    # persistence
    def load_arrangement(self, event_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self.payload)

    def save_arrangement(self, event_id: str, payload: Dict[str, Any]) -> None:
        if self.fail_saves:
            raise TransientServiceError("Seating store unavailable")
        self.payload = copy.deepcopy(payload)
        self.saves += 1

    # sync status
    def get_sync_status(self, event_id: str) -> Dict[str, Any]:
        baseline = self.payload.get("syncBaseline")
        if not baseline:
            return {"syncRequired": False, "pendingTriggers": 0}
        old = [fingerprint_from_payload(fp) for fp in baseline]
        separated = bool(self.payload.get("isSeparatedSeating", False))
        changes = diff(old, snapshot(self.guests.values(), confirmed_only=False), separated=separated)
        return {"syncRequired": bool(changes), "pendingTriggers": len(changes)}

    # suggestions
    def suggest(self, event_id: str, preferences: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Enough default-sized tables for every confirmed person."""
        people = sum(max(g.attending_count, 1) for g in self.guests.values() if g.is_confirmed)
        tables = math.ceil(people / config.DEFAULT_TABLE_CAPACITY) if people else 0
        return {"tableCounts": {str(config.DEFAULT_TABLE_CAPACITY): tables}} if tables else {"tableCounts": {}}
