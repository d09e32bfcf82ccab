from planit_seating.actions import ActionKind
from planit_seating.models import GenderAffinity, Partition, SeatKey, SeatingPreferences
from planit_seating.optimizer import optimize_tables, remove_empty_tables
from planit_seating.state import SeatingState

from factories import guest, roster, seated_state, table


def test_small_table_merges_into_first_fitting_table():
    # scenario C
    r = roster([guest("a", count=5), guest("b", count=4), guest("c", count=1)])
    state = seated_state(
        [table("t1", capacity=10), table("t2", capacity=10)],
        {"t1": ["a", "b"], "t2": ["c"]},
    )
    actions = optimize_tables(state, r)

    assert [a.kind for a in actions] == [ActionKind.ARRANGEMENT_OPTIMIZED]
    assert [t.id for t in state.tables] == ["t1"]
    assert state.seated("t1") == [SeatKey("a"), SeatKey("b"), SeatKey("c")]


def test_empty_tables_are_removed_silently():
    r = roster([guest("a", count=5)])
    state = seated_state([table("t1"), table("t2"), table("t3")], {"t2": ["a"]})
    assert optimize_tables(state, r) == []
    assert [t.id for t in state.tables] == ["t2"]


def test_single_table_is_never_merged():
    r = roster([guest("a")])
    state = seated_state([table("t1", capacity=10)], {"t1": ["a"]})
    assert optimize_tables(state, r) == []
    assert [t.id for t in state.tables] == ["t1"]


def test_no_merge_without_room():
    r = roster([guest("a", count=10), guest("b", count=2)])
    state = seated_state([table("t1", capacity=10), table("t2", capacity=10)], {"t1": ["a"], "t2": ["b"]})
    assert optimize_tables(state, r) == []
    assert len(state.tables) == 2


def test_merge_never_splits_or_drops_guests():
    r = roster([guest(g, count=1) for g in "abcdef"])
    state = seated_state(
        [table("t1", capacity=4), table("t2", capacity=12), table("t3", capacity=12)],
        {"t1": ["a", "b"], "t2": ["c", "d"], "t3": ["e", "f"]},
    )
    before = state.seated_keys()
    optimize_tables(state, r)
    assert state.seated_keys() == before
    for key in before:
        assert sum(keys.count(key) for keys in state.arrangement.values()) == 1
    for t in state.tables:
        assert state.seated(t.id)


def test_merge_respects_affinity():
    r = roster([guest("a", male=1), guest("b", female=1)], separated=True)
    state = SeatingState(
        tables=[table("m", affinity=GenderAffinity.MALE), table("f", affinity=GenderAffinity.FEMALE)],
        arrangement={"m": [SeatKey("a", Partition.MALE)], "f": [SeatKey("b", Partition.FEMALE)]},
        separated=True,
    )
    assert optimize_tables(state, r) == []
    assert len(state.tables) == 2


def test_merge_respects_group_mixing_preference():
    r = roster([guest("a", group="family", count=6), guest("b", group="work")])
    state = seated_state(
        [table("t1", capacity=10), table("t2", capacity=10)],
        {"t1": ["a"], "t2": ["b"]},
        preferences=SeatingPreferences(allow_group_mixing=False),
    )
    assert optimize_tables(state, r) == []


def test_remove_empty_tables_does_not_merge():
    r = roster([guest("a")])
    state = seated_state([table("t1"), table("t2"), table("t3")], {"t1": ["a"], "t3": ["x"]})
    assert remove_empty_tables(state, r) == 1
    assert [t.id for t in state.tables] == ["t1", "t3"]
