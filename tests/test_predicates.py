"""Predicate parsing and validation."""

from decimal import Decimal

import pytest

from outcomeguard.errors import BetValidationError
from outcomeguard.models import GameKind, PeriodKey, liability_for, parse_predicate, parse_predicate_key


def test_parse_wire_values():
    p = parse_predicate("color", "Red")
    assert p.kind == "color" and p.color == "red"
    assert p.key == "COLOR:red"
    pos = parse_predicate("POSITION", "a_5")
    assert (pos.position, pos.digit) == ("A", 5)
    assert pos.key == "POSITION:A_5"
    assert parse_predicate("TRIPLE", "any").face is None


def test_key_parses_back():
    for bet_type, value in [("NUMBER", 7), ("SUM_SIZE", "big"), ("PAIR", 3), ("POSITION_PARITY", "D_even")]:
        p = parse_predicate(bet_type, value)
        assert parse_predicate_key(p.key) == p


@pytest.mark.parametrize(
    "bet_type,value",
    [
        ("NUMBER", 10),
        ("NUMBER", "seven"),
        ("COLOR", "blue"),
        ("SIZE", "huge"),
        ("POSITION", "F_1"),
        ("POSITION", "A5"),
        ("PATTERN", "full_house"),
        ("JACKPOT", "1"),
    ],
)
def test_invalid_predicates(bet_type, value):
    with pytest.raises(BetValidationError):
        parse_predicate(bet_type, value)


def test_predicate_not_offered_on_game(spaces):
    with pytest.raises(BetValidationError):
        spaces.get(GameKind.TRIPLE_DICE).parse_predicate("COLOR", "red")
    with pytest.raises(BetValidationError):
        spaces.get(GameKind.COMBINATORIAL5).parse_predicate("NUMBER", 1)


def test_liability_rounds_half_up():
    assert liability_for(100, Decimal("1.96")) == 196
    assert liability_for(5, Decimal("1.5")) == 8
    assert liability_for(3, Decimal("1.5")) == 5


def test_period_key_validation():
    key = PeriodKey.build("5D", 60, "default", "20250101000000001")
    assert key.scope == "5d:60:default:20250101000000001"
    with pytest.raises(BetValidationError):
        PeriodKey.build("wingo", 45, "default", "1")
    with pytest.raises(BetValidationError):
        PeriodKey.build("k3", 30, "default", "1")
    with pytest.raises(BetValidationError):
        PeriodKey.build("wingo", 30, "a:b", "1")
    with pytest.raises(BetValidationError):
        PeriodKey.build("roulette", 30, "default", "1")
