from planit_seating import naming

from factories import guest, roster, seated_state, table


def test_dominant_group_by_total_size():
    r = roster([guest("a", group="friends", count=1), guest("b", group="family", count=3)])
    state = seated_state([table("t1", name="Table 2")], {"t1": ["a", "b"]})
    assert naming.derive_name(2, "t1", state, r) == "Table 2 - Family"


def test_tie_goes_to_group_seated_first():
    r = roster([guest("a", group="friends", count=2), guest("b", group="family", count=2)])
    state = seated_state([table("t1")], {"t1": ["a", "b"]})
    assert naming.dominant_group("t1", state, r) == "friends"
    state = seated_state([table("t1")], {"t1": ["b", "a"]})
    assert naming.dominant_group("t1", state, r) == "family"


def test_custom_group_is_used_verbatim():
    r = roster([guest("a", group="other", custom="College Crew")])
    state = seated_state([table("t1")], {"t1": ["a"]})
    assert naming.derive_name(1, "t1", state, r) == "Table 1 - College Crew"


def test_empty_table_has_plain_name():
    assert naming.derive_name(3, "t1", seated_state([table("t1")]), roster([])) == "Table 3"


def test_next_table_number_is_max_plus_one():
    tables = [table("a", name="Table 2"), table("b", name="Table 7 - Work"), table("c", name="Bar")]
    assert naming.next_table_number(tables) == 8
    assert naming.next_table_number([]) == 1


def test_refresh_skips_manual_names():
    r = roster([guest("a", group="work")])
    state = seated_state(
        [table("t1", name="Table 1"), table("t2", name="Table 2"), table("t3", name="Sweetheart")],
        {"t1": ["a"]},
        manual_names={"t2"},
    )
    state.arrangement["t2"] = list(state.arrangement["t1"])
    naming.refresh_names(state, r)
    assert [t.name for t in state.tables] == ["Table 1 - Work", "Table 2", "Sweetheart"]


def test_auto_name_patterns():
    state = seated_state([table("t1", name="Table 4 - Family"), table("t2", name="VIP")])
    assert not naming.is_manually_named(state.tables[0], state)
    assert naming.is_manually_named(state.tables[1], state)
