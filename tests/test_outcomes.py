"""Outcome spaces: universes, attributes and winning sets."""

import pytest

from outcomeguard.errors import BetValidationError, StateUnavailable
from outcomeguard.models import DiceOutcome, FiveDigitOutcome, GameKind, NumberOutcome
from outcomeguard.outcomes import CombinationsTable, OutcomeSpaces


def test_universe_sizes(spaces):
    assert spaces.get(GameKind.SMALL_DISCRETE).size == 10
    assert spaces.get(GameKind.TRIPLE_DICE).size == 216
    assert spaces.get(GameKind.COMBINATORIAL5).size == 100_000


def test_universe_is_canonically_sorted(spaces):
    for game in GameKind:
        keys = spaces.get(game).universe()
        assert keys == sorted(keys)
    assert spaces.get(GameKind.TRIPLE_DICE).universe()[:2] == ["111", "112"]


def test_wingo_colours():
    assert NumberOutcome(0).colors == {"red", "violet"}
    assert NumberOutcome(5).colors == {"green", "violet"}
    assert NumberOutcome(4).colors == {"red"}
    assert NumberOutcome(7).color == "green"
    assert NumberOutcome(0).color == "red_violet"
    assert NumberOutcome(5).size == "big"
    assert NumberOutcome(4).size == "small"


def test_wingo_winning_sets(spaces):
    space = spaces.get(GameKind.SMALL_DISCRETE)
    assert space.winning_outcomes(space.parse_predicate("COLOR", "red")) == {"0", "2", "4", "6", "8"}
    assert space.winning_outcomes(space.parse_predicate("COLOR", "violet")) == {"0", "5"}
    assert space.winning_outcomes(space.parse_predicate("SIZE", "big")) == {"5", "6", "7", "8", "9"}
    assert space.winning_outcomes(space.parse_predicate("NUMBER", 3)) == {"3"}


def test_dice_attributes():
    triple = DiceOutcome(4, 4, 4)
    assert triple.is_triple and triple.pair_face is None
    pair = DiceOutcome(2, 5, 2)
    assert pair.pair_face == 2 and not pair.is_all_different
    straight = DiceOutcome(3, 1, 2)
    assert straight.is_straight and straight.is_all_different
    assert DiceOutcome(5, 5, 1).sum_size == "big"
    assert DiceOutcome(4, 3, 3).sum_size == "small"


def test_k3_winning_sets(spaces):
    space = spaces.get(GameKind.TRIPLE_DICE)
    assert len(space.winning_outcomes(space.parse_predicate("SUM_SIZE", "big"))) == 108
    assert len(space.winning_outcomes(space.parse_predicate("TRIPLE", "any"))) == 6
    assert space.winning_outcomes(space.parse_predicate("TRIPLE", 6)) == {"666"}
    # Exactly two equal dice: 6 faces x 5 other faces x 3 positions
    assert len(space.winning_outcomes(space.parse_predicate("PAIR", "any"))) == 90
    assert len(space.winning_outcomes(space.parse_predicate("SUM", 3))) == 1


def test_k3_rejects_out_of_range_sum(spaces):
    with pytest.raises(BetValidationError):
        spaces.get(GameKind.TRIPLE_DICE).parse_predicate("SUM", 2)


def test_fived_index_lookups(spaces):
    space = spaces.get(GameKind.COMBINATORIAL5)
    assert len(space.winning_outcomes(space.parse_predicate("POSITION", "A_5"))) == 10_000
    assert len(space.winning_outcomes(space.parse_predicate("POSITION_SIZE", "C_big"))) == 50_000
    assert len(space.winning_outcomes(space.parse_predicate("POSITION_PARITY", "E_odd"))) == 50_000
    assert space.winning_outcomes(space.parse_predicate("SUM", 0)) == {"00000"}
    big = space.winning_outcomes(space.parse_predicate("SUM_SIZE", "big"))
    small = space.winning_outcomes(space.parse_predicate("SUM_SIZE", "small"))
    assert big.isdisjoint(small)
    assert len(big) + len(small) == 100_000
    assert all(FiveDigitOutcome.from_key(k).sum >= 22 for k in list(big)[:500])


def test_fived_attributes():
    o = FiveDigitOutcome.from_key("90210")
    attrs = o.attributes()
    assert attrs["A"] == 9 and attrs["E"] == 0
    assert attrs["sum"] == 12
    assert attrs["sum_size"] == "small"
    assert attrs["sum_parity"] == "even"
    assert attrs["dice_value"] == 90210


def test_partial_combinations_table_is_unavailable():
    with pytest.raises(StateUnavailable):
        CombinationsTable([FiveDigitOutcome(0, 0, 0, 0, 0)])


def test_fived_space_missing_without_table():
    with pytest.raises(StateUnavailable):
        OutcomeSpaces().get(GameKind.COMBINATORIAL5)
