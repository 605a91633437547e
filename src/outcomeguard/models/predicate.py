"""Bet predicates - closed tagged union, one model per win condition.

Wire form is ``TYPE:value`` (e.g. ``COLOR:red``, ``POSITION:A_5``); the same
string is the exposure ledger field, so ``parse_predicate_key(p.key) == p``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from outcomeguard.errors import BetValidationError

SizeValue = Literal["big", "small"]
ParityValue = Literal["odd", "even"]
PositionValue = Literal["A", "B", "C", "D", "E"]


class _Predicate(BaseModel):
    model_config = ConfigDict(frozen=True)

    bet_type: str = ""

    @property
    def value_text(self) -> str:
        raise NotImplementedError

    @property
    def key(self) -> str:
        return f"{self.bet_type}:{self.value_text}"

    def wins(self, outcome: Any) -> bool:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.key


class ExactNumber(_Predicate):
    kind: Literal["exact_number"] = "exact_number"
    bet_type: Literal["NUMBER"] = "NUMBER"
    number: int = Field(..., ge=0, le=9)

    @property
    def value_text(self) -> str:
        return str(self.number)

    def wins(self, outcome: Any) -> bool:
        return outcome.number == self.number


class Color(_Predicate):
    kind: Literal["color"] = "color"
    bet_type: Literal["COLOR"] = "COLOR"
    color: Literal["red", "green", "violet"]

    @property
    def value_text(self) -> str:
        return self.color

    def wins(self, outcome: Any) -> bool:
        return self.color in outcome.colors


class Size(_Predicate):
    kind: Literal["size"] = "size"
    bet_type: Literal["SIZE"] = "SIZE"
    size: SizeValue

    @property
    def value_text(self) -> str:
        return self.size

    def wins(self, outcome: Any) -> bool:
        return outcome.size == self.size


class Parity(_Predicate):
    kind: Literal["parity"] = "parity"
    bet_type: Literal["PARITY"] = "PARITY"
    parity: ParityValue

    @property
    def value_text(self) -> str:
        return self.parity

    def wins(self, outcome: Any) -> bool:
        return outcome.parity == self.parity


class Sum(_Predicate):
    kind: Literal["sum"] = "sum"
    bet_type: Literal["SUM"] = "SUM"
    total: int = Field(..., ge=0, le=45)

    @property
    def value_text(self) -> str:
        return str(self.total)

    def wins(self, outcome: Any) -> bool:
        return outcome.sum == self.total


class SumSize(_Predicate):
    kind: Literal["sum_size"] = "sum_size"
    bet_type: Literal["SUM_SIZE"] = "SUM_SIZE"
    size: SizeValue

    @property
    def value_text(self) -> str:
        return self.size

    def wins(self, outcome: Any) -> bool:
        return outcome.sum_size == self.size


class SumParity(_Predicate):
    kind: Literal["sum_parity"] = "sum_parity"
    bet_type: Literal["SUM_PARITY"] = "SUM_PARITY"
    parity: ParityValue

    @property
    def value_text(self) -> str:
        return self.parity

    def wins(self, outcome: Any) -> bool:
        return outcome.sum_parity == self.parity


class Triple(_Predicate):
    """All three dice equal; face=None means any triple."""

    kind: Literal["triple"] = "triple"
    bet_type: Literal["TRIPLE"] = "TRIPLE"
    face: int | None = Field(None, ge=1, le=6)

    @property
    def value_text(self) -> str:
        return "any" if self.face is None else str(self.face)

    def wins(self, outcome: Any) -> bool:
        return outcome.is_triple and (self.face is None or outcome.d1 == self.face)


class Pair(_Predicate):
    """Exactly two dice equal (a triple is not a pair); face=None means any pair."""

    kind: Literal["pair"] = "pair"
    bet_type: Literal["PAIR"] = "PAIR"
    face: int | None = Field(None, ge=1, le=6)

    @property
    def value_text(self) -> str:
        return "any" if self.face is None else str(self.face)

    def wins(self, outcome: Any) -> bool:
        pf = outcome.pair_face
        return pf is not None and (self.face is None or pf == self.face)


class Pattern(_Predicate):
    kind: Literal["pattern"] = "pattern"
    bet_type: Literal["PATTERN"] = "PATTERN"
    pattern: Literal["all_different", "straight", "two_different"]

    @property
    def value_text(self) -> str:
        return self.pattern

    def wins(self, outcome: Any) -> bool:
        if self.pattern == "all_different":
            return outcome.is_all_different
        if self.pattern == "straight":
            return outcome.is_straight
        return outcome.pair_face is not None


class Position(_Predicate):
    kind: Literal["position"] = "position"
    bet_type: Literal["POSITION"] = "POSITION"
    position: PositionValue
    digit: int = Field(..., ge=0, le=9)

    @property
    def value_text(self) -> str:
        return f"{self.position}_{self.digit}"

    def wins(self, outcome: Any) -> bool:
        return outcome.digit(self.position) == self.digit


class PositionSize(_Predicate):
    kind: Literal["position_size"] = "position_size"
    bet_type: Literal["POSITION_SIZE"] = "POSITION_SIZE"
    position: PositionValue
    size: SizeValue

    @property
    def value_text(self) -> str:
        return f"{self.position}_{self.size}"

    def wins(self, outcome: Any) -> bool:
        return outcome.position_size(self.position) == self.size


class PositionParity(_Predicate):
    kind: Literal["position_parity"] = "position_parity"
    bet_type: Literal["POSITION_PARITY"] = "POSITION_PARITY"
    position: PositionValue
    parity: ParityValue

    @property
    def value_text(self) -> str:
        return f"{self.position}_{self.parity}"

    def wins(self, outcome: Any) -> bool:
        return outcome.position_parity(self.position) == self.parity


Predicate = Annotated[
    Union[
        ExactNumber,
        Color,
        Size,
        Parity,
        Sum,
        SumSize,
        SumParity,
        Triple,
        Pair,
        Pattern,
        Position,
        PositionSize,
        PositionParity,
    ],
    Field(discriminator="kind"),
]

_predicate_adapter: TypeAdapter[Any] = TypeAdapter(Predicate)


def _split_position(value: str) -> tuple[str, str]:
    pos, sep, rest = value.partition("_")
    if not sep:
        raise BetValidationError(f"Expected <position>_<value>, got {value!r}")
    return pos.upper(), rest.lower()


def _int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise BetValidationError(f"Expected an integer, got {value!r}") from None


def _face(value: str) -> int | None:
    return None if value.lower() == "any" else _int(value)


def _fields_for(bet_type: str, value: str) -> dict[str, Any]:
    """Map wire (bet_type, bet_value) to model fields."""
    v = value.strip()
    if bet_type == "NUMBER":
        return {"kind": "exact_number", "number": _int(v)}
    if bet_type == "COLOR":
        return {"kind": "color", "color": v.lower()}
    if bet_type == "SIZE":
        return {"kind": "size", "size": v.lower()}
    if bet_type == "PARITY":
        return {"kind": "parity", "parity": v.lower()}
    if bet_type == "SUM":
        return {"kind": "sum", "total": _int(v)}
    if bet_type == "SUM_SIZE":
        return {"kind": "sum_size", "size": v.lower()}
    if bet_type == "SUM_PARITY":
        return {"kind": "sum_parity", "parity": v.lower()}
    if bet_type == "TRIPLE":
        return {"kind": "triple", "face": _face(v)}
    if bet_type == "PAIR":
        return {"kind": "pair", "face": _face(v)}
    if bet_type == "PATTERN":
        return {"kind": "pattern", "pattern": v.lower()}
    if bet_type == "POSITION":
        pos, digit = _split_position(v)
        return {"kind": "position", "position": pos, "digit": _int(digit)}
    if bet_type == "POSITION_SIZE":
        pos, size = _split_position(v)
        return {"kind": "position_size", "position": pos, "size": size}
    if bet_type == "POSITION_PARITY":
        pos, parity = _split_position(v)
        return {"kind": "position_parity", "position": pos, "parity": parity}
    raise BetValidationError(f"Unknown bet type: {bet_type!r}")


def parse_predicate(bet_type: str, bet_value: str | int) -> Any:
    """Parse a wire (bet_type, bet_value) pair into a predicate model. Game-agnostic; ranges per game are checked by the outcome space."""
    bet_type = str(bet_type or "").strip().upper()
    try:
        return _predicate_adapter.validate_python(_fields_for(bet_type, str(bet_value)))
    except PydanticValidationError as e:
        raise BetValidationError(f"Invalid value {bet_value!r} for {bet_type}: {e.errors()[0]['msg']}") from None


def parse_predicate_key(key: str) -> Any:
    """Inverse of ``predicate.key``."""
    bet_type, sep, value = key.partition(":")
    if not sep:
        raise BetValidationError(f"Invalid predicate key: {key!r}")
    return parse_predicate(bet_type, value)
