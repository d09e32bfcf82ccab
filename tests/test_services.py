import json

import httpx
import pytest

from planit_seating.errors import AuthorizationError, TransientServiceError
from planit_seating.services import HttpPlanItClient, InMemoryPlanItStore
from planit_seating.serialization import state_to_payload
from planit_seating.state import SeatingState

from factories import baseline, guest


def client_for(handler, token="secret"):
    return HttpPlanItClient("http://planit.test", token=token, transport=httpx.MockTransport(handler))


def test_list_guests_parses_roster():
    def handler(request):
        assert request.url.path == "/api/events/e1/guests"
        assert request.headers["Authorization"] == "Bearer secret"
        return httpx.Response(
            200,
            json=[{"_id": "g1", "firstName": "Ann", "rsvpStatus": "confirmed", "attendingCount": 2}],
        )

    guests = client_for(handler).list_guests("e1")
    assert [(g.id, g.first_name, g.attending_count) for g in guests] == [("g1", "Ann", 2)]


def test_missing_seating_loads_as_empty():
    client = client_for(lambda request: httpx.Response(404, json={"message": "not found"}))
    assert client.load_arrangement("e1") == {}


def test_save_puts_payload():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"ok": True})

    client_for(handler).save_arrangement("e1", state_to_payload(SeatingState()))
    assert seen["method"] == "PUT"
    assert seen["body"]["tables"] == []
    assert seen["body"]["syncBaseline"] is None


def test_unauthorized_clears_token():
    client = client_for(lambda request: httpx.Response(401))
    with pytest.raises(AuthorizationError):
        client.list_guests("e1")
    assert client.token is None


def test_server_error_is_transient():
    client = client_for(lambda request: httpx.Response(500))
    with pytest.raises(TransientServiceError) as exc:
        client.get_sync_status("e1")
    assert exc.value.status_code == 500


def test_connection_error_is_transient():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransientServiceError):
        client_for(handler).load_arrangement("e1")


def test_sync_endpoints():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path, json.loads(request.content or b"{}")))
        return httpx.Response(200, json={"syncRequired": True, "pendingTriggers": 2})

    client = client_for(handler)
    assert client.get_sync_status("e1") == {"syncRequired": True, "pendingTriggers": 2}
    client.apply_sync_option("e1", "optimal_1")
    client.move_to_unassigned("e1", ["g1"])
    assert calls[1] == ("POST", "/api/events/e1/seating/sync/apply-option", {"optionId": "optimal_1"})
    assert calls[2][2] == {"guestIds": ["g1"]}


def test_in_memory_status_counts_pending_changes():
    saved = state_to_payload(SeatingState(fingerprint=baseline([guest("a"), guest("b", status="pending")])))
    store = InMemoryPlanItStore([guest("a"), guest("b"), guest("c")], saved)
    assert store.get_sync_status("e1") == {"syncRequired": True, "pendingTriggers": 2}


def test_in_memory_suggestion_covers_confirmed_people():
    store = InMemoryPlanItStore([guest("a", count=6), guest("b", count=6), guest("p", status="pending", count=9)])
    assert store.suggest("e1") == {"tableCounts": {"10": 2}}
