import pytest

from planit_seating.actions import ActionKind
from planit_seating.autosave import AutoSaver
from planit_seating.errors import AuthorizationError, OptionNotFound, TransientServiceError
from planit_seating.models import SeatKey, SyncSettings
from planit_seating.reconcile import SyncStrategy
from planit_seating.scheduling import ManualScheduler
from planit_seating.services import InMemoryPlanItStore
from planit_seating.serialization import state_to_payload
from planit_seating.sync import SyncCoordinator, SyncOutcome, SyncPoller

from factories import guest, seated_state, table


def session(guests, state=None):
    store = InMemoryPlanItStore(guests, state_to_payload(state) if state is not None else None)
    scheduler = ManualScheduler()
    coordinator = SyncCoordinator("evt", store, store, scheduler, status_service=store)
    coordinator.load()
    return coordinator, store, scheduler


def test_first_load_sets_baseline():
    coordinator, store, _ = session([guest("a")])
    assert [fp.id for fp in coordinator.state.fingerprint] == ["a"]
    assert coordinator.sync() is SyncOutcome.NO_CHANGES


def test_missing_saved_seating_is_empty_state():
    coordinator, _, _ = session([])
    assert coordinator.state.tables == []
    assert coordinator.state.arrangement == {}


def test_new_confirmation_is_applied_and_saved():
    coordinator, store, scheduler = session([guest("a", status="pending", count=2)])
    coordinator.add_table(capacity=8)
    store.upsert_guest(guest("a", count=2))

    assert coordinator.sync() is SyncOutcome.APPLIED
    assert [a.kind for a in coordinator.last_actions] == [ActionKind.GUEST_SEATED]
    assert coordinator.state.table_of(SeatKey("a")) is not None

    scheduler.advance(3)
    assert store.saves == 1
    assert store.payload["syncBaseline"][0]["status"] == "confirmed"
    assert coordinator.sync() is SyncOutcome.NO_CHANGES


def test_autosave_waits_for_quiet_period():
    coordinator, store, scheduler = session([])
    coordinator.add_table(capacity=8)
    scheduler.advance(2)
    coordinator.add_table(capacity=10)
    scheduler.advance(2)
    assert store.saves == 0
    scheduler.advance(1)
    assert store.saves == 1
    assert len(store.payload["tables"]) == 2


def test_failed_save_is_kept_not_retried():
    coordinator, store, scheduler = session([])
    store.fail_saves = True
    coordinator.add_table(capacity=8)
    scheduler.advance(3)
    assert isinstance(coordinator.autosaver.last_error, TransientServiceError)
    assert len(coordinator.state.tables) == 1
    assert scheduler.pending == 0

    store.fail_saves = False
    coordinator.add_table(capacity=8)
    scheduler.advance(3)
    assert coordinator.autosaver.last_error is None
    assert len(store.payload["tables"]) == 2


def test_busy_coordinator_skips_sync():
    coordinator, _, _ = session([guest("a")])
    coordinator.busy = True
    assert coordinator.sync() is SyncOutcome.SKIPPED


def _displacing_session():
    before = [guest("a", count=4), guest("b", count=4), guest("c", count=4), guest("d", count=4)]
    state = seated_state([table("t1", name="T1"), table("t2", name="T2")], {"t1": ["a", "b"], "t2": ["c", "d"]})
    coordinator, store, scheduler = session(before, state)
    store.upsert_guest(guest("a", count=6))
    store.upsert_guest(guest("c", count=6))
    return coordinator, store, scheduler


def test_dismissed_options_are_detected_again():
    coordinator, _, _ = _displacing_session()
    before = coordinator.state

    assert coordinator.sync() is SyncOutcome.DECISION_REQUIRED
    assert coordinator.state is before
    coordinator.dismiss()
    assert coordinator.pending is None
    assert coordinator.state is before
    assert coordinator.sync() is SyncOutcome.DECISION_REQUIRED


def test_choosing_an_option_advances_baseline():
    coordinator, _, _ = _displacing_session()
    coordinator.sync()
    optimal = next(o for o in coordinator.pending.options if o.strategy is SyncStrategy.OPTIMAL)

    coordinator.choose_option(optimal.id)
    assert coordinator.pending is None
    assert len(coordinator.state.tables) == 4
    assert coordinator.sync() is SyncOutcome.NO_CHANGES


def test_unknown_option_id():
    coordinator, _, _ = _displacing_session()
    with pytest.raises(OptionNotFound):
        coordinator.choose_option("nope")
    coordinator.sync()
    with pytest.raises(OptionNotFound):
        coordinator.choose_option("nope")


def test_move_affected_guests_to_unassigned():
    coordinator, _, _ = _displacing_session()
    coordinator.sync()
    coordinator.move_affected_to_unassigned()

    assert coordinator.pending is None
    assert coordinator.state.table_of(SeatKey("a")) is None
    assert coordinator.state.table_of(SeatKey("c")) is None
    assert coordinator.state.table_of(SeatKey("b")) == "t1"
    assert [a.kind for a in coordinator.last_actions] == [ActionKind.GUEST_UNASSIGNED] * 2
    assert coordinator.sync() is SyncOutcome.NO_CHANGES


def test_clear_all_resets_baseline():
    coordinator, _, _ = session([guest("a")])
    coordinator.clear_all()
    assert coordinator.state.fingerprint is None
    assert coordinator.sync() is SyncOutcome.BASELINE
    assert coordinator.state.fingerprint is not None


def test_poller_runs_every_interval_until_stopped():
    coordinator, store, scheduler = session([guest("a")])
    poller = SyncPoller(coordinator, scheduler, interval=20)
    poller.start()
    scheduler.advance(19)
    assert poller.outcomes == []
    scheduler.advance(1)
    assert poller.outcomes == [SyncOutcome.NO_CHANGES]
    scheduler.advance(40)
    assert len(poller.outcomes) == 3
    poller.stop()
    scheduler.advance(60)
    assert len(poller.outcomes) == 3


class FlakyRoster:
    def __init__(self, error):
        self.error = error
        self.calls = 0

    def list_guests(self, event_id):
        self.calls += 1
        if self.calls > 1:
            raise self.error
        return []


def test_poller_keeps_going_after_transient_errors():
    roster_service = FlakyRoster(TransientServiceError("down"))
    store = InMemoryPlanItStore()
    scheduler = ManualScheduler()
    coordinator = SyncCoordinator("evt", roster_service, store, scheduler)
    coordinator.load()
    poller = SyncPoller(coordinator, scheduler, interval=20)
    poller.start()
    scheduler.advance(60)
    assert roster_service.calls == 4
    assert poller.running
    assert not coordinator.busy
    assert coordinator.stats.failed_syncs == 3


def test_poller_stops_on_authorization_error():
    roster_service = FlakyRoster(AuthorizationError("expired", status_code=401))
    store = InMemoryPlanItStore()
    scheduler = ManualScheduler()
    coordinator = SyncCoordinator("evt", roster_service, store, scheduler)
    coordinator.load()
    seen = []
    poller = SyncPoller(coordinator, scheduler, interval=20, on_auth_error=seen.append)
    poller.start()
    scheduler.advance(100)
    assert not poller.running
    assert len(seen) == 1
    assert roster_service.calls == 2


def test_autosaver_flush_without_pending_state():
    saver = AutoSaver(lambda payload: None, ManualScheduler(), delay=3)
    assert saver.flush() is False


def test_gender_only_change_in_unified_mode_is_not_a_change():
    state = seated_state([table("t1")], {"t1": ["a"]})
    coordinator, store, _ = session([guest("a", count=2, male=1, female=1)], state)
    store.upsert_guest(guest("a", count=2, male=2, female=0))

    assert coordinator.sync() is SyncOutcome.NO_CHANGES
    assert coordinator.last_actions == []


def test_edits_made_while_a_decision_is_pending_survive_the_choice():
    guests = [guest("a", count=4), guest("b", count=4), guest("c", count=4), guest("d", count=4), guest("x")]
    state = seated_state(
        [table("t1", name="T1"), table("t2", name="T2"), table("t3", capacity=4, name="T3")],
        {"t1": ["a", "b"], "t2": ["c", "d"]},
    )
    coordinator, store, _ = session(guests, state)
    store.upsert_guest(guest("a", count=6))
    store.upsert_guest(guest("c", count=6))
    assert coordinator.sync() is SyncOutcome.DECISION_REQUIRED

    coordinator.seat(SeatKey("x"), "t3")
    conservative = next(o for o in coordinator.pending.options if o.strategy is SyncStrategy.CONSERVATIVE)
    coordinator.choose_option(conservative.id)

    assert coordinator.state.table_of(SeatKey("x")) == "t3"
    assert coordinator.state.table_of(SeatKey("a")) is None
    assert coordinator.state.table_of(SeatKey("b")) == "t1"
    assert coordinator.sync() is SyncOutcome.NO_CHANGES


class CountingRoster:
    def __init__(self, guests):
        self.guests = list(guests)
        self.calls = 0

    def list_guests(self, event_id):
        self.calls += 1
        return list(self.guests)


class FixedStatus:
    def __init__(self, required):
        self.required = required

    def get_sync_status(self, event_id):
        return {"syncRequired": self.required, "pendingTriggers": 1 if self.required else 0}


def test_poll_only_syncs_when_triggers_are_pending():
    roster_service = CountingRoster([guest("a")])
    status = FixedStatus(False)
    coordinator = SyncCoordinator("evt", roster_service, InMemoryPlanItStore(), ManualScheduler(), status_service=status)
    coordinator.load()

    assert coordinator.poll() is SyncOutcome.NO_CHANGES
    assert roster_service.calls == 1

    status.required = True
    assert coordinator.poll() is SyncOutcome.NO_CHANGES
    assert roster_service.calls == 2
    assert coordinator.pending_triggers == 1


class SlowRoster(CountingRoster):
    """Lets the poller's timer fire while the second roster fetch is in flight."""

    def __init__(self, guests, scheduler):
        super().__init__(guests)
        self.scheduler = scheduler

    def list_guests(self, event_id):
        guests = super().list_guests(event_id)
        if self.calls == 2:
            self.scheduler.advance(20)
        return guests


def test_poll_overlapping_a_manual_sync_is_skipped():
    scheduler = ManualScheduler()
    roster_service = SlowRoster([guest("a")], scheduler)
    coordinator = SyncCoordinator("evt", roster_service, InMemoryPlanItStore(), scheduler)
    coordinator.load()
    poller = SyncPoller(coordinator, scheduler, interval=20)
    poller.start()

    assert coordinator.sync() is SyncOutcome.NO_CHANGES
    assert poller.outcomes == [SyncOutcome.SKIPPED]
    assert roster_service.calls == 2
    assert not coordinator.busy

    scheduler.advance(20)
    assert poller.outcomes == [SyncOutcome.SKIPPED, SyncOutcome.NO_CHANGES]
    assert coordinator.stats.to_dict() == {"totalSyncs": 2, "successfulSyncs": 2, "failedSyncs": 0}


def test_auto_sync_switch_stops_polling_but_not_manual_sync():
    state = seated_state([table("t1")], sync_settings=SyncSettings(auto_sync_enabled=False))
    coordinator, store, _ = session([guest("a", status="pending")], state)
    store.upsert_guest(guest("a"))

    assert coordinator.poll() is SyncOutcome.SKIPPED
    assert coordinator.state.table_of(SeatKey("a")) is None
    assert coordinator.sync() is SyncOutcome.APPLIED
    assert coordinator.state.table_of(SeatKey("a")) == "t1"


def test_switched_off_changes_still_advance_baseline():
    settings = SyncSettings(sync_on_attending_count_change=False)
    state = seated_state([table("t1")], {"t1": ["a"]}, sync_settings=settings)
    coordinator, store, _ = session([guest("a", count=2)], state)
    store.upsert_guest(guest("a", count=3))

    assert coordinator.sync() is SyncOutcome.NO_CHANGES
    assert coordinator.state.fingerprint[0].attending_count == 3
    assert coordinator.state.seated("t1") == [SeatKey("a")]


def test_sync_settings_are_saved_with_the_seating():
    coordinator, store, scheduler = session([])
    settings = coordinator.update_sync_settings(auto_create_tables=False, preferred_table_size=12)
    assert settings == SyncSettings(auto_create_tables=False, preferred_table_size=12)

    scheduler.advance(3)
    assert store.payload["syncSettings"]["autoCreateTables"] is False
    assert store.payload["syncSettings"]["preferredTableSize"] == 12
