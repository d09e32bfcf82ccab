from planit_seating.models import (
    GenderAffinity,
    Partition,
    SeatKey,
    SeatingPreferences,
    Table,
    clean_text,
    parse_int,
)

from factories import guest, roster


def test_unified_guest_is_one_entity():
    g = guest("g1", count=3)
    assert g.seat_keys(separated=False) == [SeatKey("g1")]
    assert g.seat_size(Partition.UNIFIED) == 3


def test_zero_attending_count_still_takes_a_seat():
    assert guest("g1", count=0).seat_size(Partition.UNIFIED) == 1


def test_mixed_party_splits_in_separated_mode():
    g = guest("g1", count=3, male=2, female=1)
    assert g.seat_keys(separated=True) == [SeatKey("g1", Partition.MALE), SeatKey("g1", Partition.FEMALE)]
    r = roster([g], separated=True)
    assert r.size_of(SeatKey("g1", Partition.MALE)) == 2
    assert r.size_of(SeatKey("g1", Partition.FEMALE)) == 1


def test_only_confirmed_guests_are_seatable():
    r = roster([guest("a"), guest("b", status="pending")])
    assert r.is_seatable(SeatKey("a"))
    assert not r.is_seatable(SeatKey("b"))
    assert not r.is_seatable(SeatKey("missing"))
    assert r.entities() == [SeatKey("a")]


def test_custom_group_takes_precedence():
    assert guest("a", group="work", custom="Book Club").display_group == "Book Club"
    assert guest("b", group="work").display_group == "work"


def test_unknown_guest_name_and_size():
    r = roster([])
    assert r.name_of("x") == "unknown guest"
    assert r.size_of(SeatKey("x")) == 0


def test_table_affinity():
    t = Table(id="t", name="T", capacity=8, affinity=GenderAffinity.MALE)
    assert t.accepts(Partition.MALE)
    assert not t.accepts(Partition.FEMALE)
    assert not t.accepts(Partition.UNIFIED)
    assert Table(id="u", name="U", capacity=8).accepts(Partition.FEMALE)


def test_keep_separate_is_symmetric():
    prefs = SeatingPreferences(keep_separate=[("a", "b"), ("c", "a")])
    assert prefs.separated_from("a") == {"b", "c"}
    assert prefs.separated_from("b") == {"a"}


def test_csv_cell_helpers():
    assert clean_text(float("nan")) == ""
    assert clean_text("  x ") == "x"
    assert parse_int("2.0") == 2
    assert parse_int("", default=1) == 1
