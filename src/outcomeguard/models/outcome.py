"""Elementary outcomes. Every attribute is recomputed from the digits, never stored."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

POSITIONS = "ABCDE"

# Sum thresholds at or above which a total counts as "big"
WINGO_BIG_FROM = 5
K3_BIG_FROM = 11
FIVED_SUM_BIG_FROM = 22
FIVED_DIGIT_BIG_FROM = 5

_RED = frozenset({0, 2, 4, 6, 8})
_GREEN = frozenset({1, 3, 5, 7, 9})
_VIOLET = frozenset({0, 5})


def _size(value: int, big_from: int) -> str:
    return "big" if value >= big_from else "small"


def _parity(value: int) -> str:
    return "even" if value % 2 == 0 else "odd"


@dataclass(frozen=True, slots=True)
class NumberOutcome:
    """Single digit 0-9 with colour, size and parity."""

    number: int

    def __post_init__(self) -> None:
        if not 0 <= self.number <= 9:
            raise ValueError(f"number out of range: {self.number}")

    @property
    def key(self) -> str:
        return str(self.number)

    @property
    def digits(self) -> tuple[int, ...]:
        return (self.number,)

    @property
    def colors(self) -> frozenset[str]:
        out = set()
        if self.number in _RED:
            out.add("red")
        if self.number in _GREEN:
            out.add("green")
        if self.number in _VIOLET:
            out.add("violet")
        return frozenset(out)

    @property
    def color(self) -> str:
        """Display colour: red, green, red_violet (0) or green_violet (5)."""
        base = "red" if self.number in _RED else "green"
        return f"{base}_violet" if self.number in _VIOLET else base

    @property
    def size(self) -> str:
        return _size(self.number, WINGO_BIG_FROM)

    @property
    def parity(self) -> str:
        return _parity(self.number)

    def attributes(self) -> dict[str, Any]:
        return {"number": self.number, "color": self.color, "size": self.size, "parity": self.parity}


@dataclass(frozen=True, slots=True)
class DiceOutcome:
    """Three dice, each 1-6."""

    d1: int
    d2: int
    d3: int

    def __post_init__(self) -> None:
        for d in (self.d1, self.d2, self.d3):
            if not 1 <= d <= 6:
                raise ValueError(f"die out of range: {d}")

    @property
    def key(self) -> str:
        return f"{self.d1}{self.d2}{self.d3}"

    @property
    def digits(self) -> tuple[int, ...]:
        return (self.d1, self.d2, self.d3)

    @property
    def sum(self) -> int:
        return self.d1 + self.d2 + self.d3

    @property
    def sum_size(self) -> str:
        return _size(self.sum, K3_BIG_FROM)

    @property
    def sum_parity(self) -> str:
        return _parity(self.sum)

    @property
    def is_triple(self) -> bool:
        return self.d1 == self.d2 == self.d3

    @property
    def pair_face(self) -> int | None:
        """Face shown by exactly two dice, else None (no pair, or a triple)."""
        for face in set(self.digits):
            if self.digits.count(face) == 2:
                return face
        return None

    @property
    def is_all_different(self) -> bool:
        return len(set(self.digits)) == 3

    @property
    def is_straight(self) -> bool:
        lo, mid, hi = sorted(self.digits)
        return mid == lo + 1 and hi == mid + 1

    def attributes(self) -> dict[str, Any]:
        return {
            "dice": list(self.digits),
            "sum": self.sum,
            "sum_size": self.sum_size,
            "sum_parity": self.sum_parity,
            "is_triple": self.is_triple,
            "is_pair": self.pair_face is not None,
            "is_straight": self.is_straight,
        }


@dataclass(frozen=True, slots=True)
class FiveDigitOutcome:
    """Five digits 0-9 at positions A-E."""

    a: int
    b: int
    c: int
    d: int
    e: int

    def __post_init__(self) -> None:
        for v in self.digits:
            if not 0 <= v <= 9:
                raise ValueError(f"digit out of range: {v}")

    @classmethod
    def from_key(cls, key: str) -> FiveDigitOutcome:
        if len(key) != 5 or not key.isdigit():
            raise ValueError(f"invalid 5d key: {key!r}")
        return cls(*(int(ch) for ch in key))

    @property
    def key(self) -> str:
        return f"{self.a}{self.b}{self.c}{self.d}{self.e}"

    @property
    def digits(self) -> tuple[int, ...]:
        return (self.a, self.b, self.c, self.d, self.e)

    def digit(self, position: str) -> int:
        return self.digits[POSITIONS.index(position)]

    def position_size(self, position: str) -> str:
        return _size(self.digit(position), FIVED_DIGIT_BIG_FROM)

    def position_parity(self, position: str) -> str:
        return _parity(self.digit(position))

    @property
    def sum(self) -> int:
        return sum(self.digits)

    @property
    def sum_size(self) -> str:
        return _size(self.sum, FIVED_SUM_BIG_FROM)

    @property
    def sum_parity(self) -> str:
        return _parity(self.sum)

    def attributes(self) -> dict[str, Any]:
        attrs: dict[str, Any] = {pos: v for pos, v in zip(POSITIONS, self.digits)}
        attrs.update(
            sum=self.sum,
            sum_size=self.sum_size,
            sum_parity=self.sum_parity,
            dice_value=int(self.key),
        )
        return attrs


Outcome = NumberOutcome | DiceOutcome | FiveDigitOutcome
