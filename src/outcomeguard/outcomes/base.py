"""Outcome space protocol - universe, predicate parsing, winning sets."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from outcomeguard.errors import BetValidationError
from outcomeguard.models.game import GameKind
from outcomeguard.models.predicate import parse_predicate, parse_predicate_key


class OutcomeSpace(ABC):
    """Per-game universe of elementary outcomes and the predicates offered on it."""

    game: GameKind
    predicate_kinds: frozenset[str] = frozenset()

    @abstractmethod
    def universe(self) -> list[str]:
        """Canonically sorted outcome keys."""
        ...

    @abstractmethod
    def outcome(self, key: str) -> Any:
        """Outcome object for a key. Raises KeyError for keys outside the universe."""
        ...

    @abstractmethod
    def winning_outcomes(self, predicate: Any) -> frozenset[str]:
        """Keys of every outcome the predicate pays out on."""
        ...

    @property
    def size(self) -> int:
        return len(self.universe())

    def check_predicate(self, predicate: Any) -> Any:
        """Game-specific range checks beyond the model's own constraints."""
        return predicate

    def parse_predicate(self, bet_type: str, bet_value: str | int) -> Any:
        """Parse and validate a wire predicate for this game."""
        predicate = parse_predicate(bet_type, bet_value)
        return self.validate(predicate)

    def parse_predicate_key(self, key: str) -> Any:
        return self.validate(parse_predicate_key(key))

    def validate(self, predicate: Any) -> Any:
        if predicate.kind not in self.predicate_kinds:
            raise BetValidationError(f"{predicate.bet_type} bets are not offered on {self.game.value}")
        return self.check_predicate(predicate)


class EnumeratedOutcomeSpace(OutcomeSpace):
    """Small universe held in memory; winning sets found by filtering."""

    def __init__(self, outcomes: list[Any]) -> None:
        self._outcomes = {o.key: o for o in outcomes}
        self._keys = sorted(self._outcomes)

    def universe(self) -> list[str]:
        return list(self._keys)

    @property
    def size(self) -> int:
        return len(self._keys)

    def outcome(self, key: str) -> Any:
        return self._outcomes[key]

    def winning_outcomes(self, predicate: Any) -> frozenset[str]:
        return frozenset(k for k in self._keys if predicate.wins(self._outcomes[k]))
