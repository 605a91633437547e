"""Three-dice game (TripleDice): 216 outcomes."""

from __future__ import annotations

from itertools import product
from typing import Any

from outcomeguard.errors import BetValidationError
from outcomeguard.models.game import GameKind
from outcomeguard.models.outcome import DiceOutcome
from outcomeguard.outcomes.base import EnumeratedOutcomeSpace

K3_MIN_SUM = 3
K3_MAX_SUM = 18


class K3OutcomeSpace(EnumeratedOutcomeSpace):
    game = GameKind.TRIPLE_DICE
    predicate_kinds = frozenset({"sum", "sum_size", "sum_parity", "triple", "pair", "pattern"})

    def __init__(self) -> None:
        super().__init__([DiceOutcome(*dice) for dice in product(range(1, 7), repeat=3)])

    def check_predicate(self, predicate: Any) -> Any:
        if predicate.kind == "sum" and not K3_MIN_SUM <= predicate.total <= K3_MAX_SUM:
            raise BetValidationError(f"k3 sum must be {K3_MIN_SUM}-{K3_MAX_SUM}, got {predicate.total}")
        return predicate
