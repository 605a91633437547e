"""Single-digit colour/number lottery (SmallDiscrete): 10 outcomes."""

from __future__ import annotations

from outcomeguard.models.game import GameKind
from outcomeguard.models.outcome import NumberOutcome
from outcomeguard.outcomes.base import EnumeratedOutcomeSpace


class WingoOutcomeSpace(EnumeratedOutcomeSpace):
    game = GameKind.SMALL_DISCRETE
    predicate_kinds = frozenset({"exact_number", "color", "size", "parity"})

    def __init__(self) -> None:
        super().__init__([NumberOutcome(n) for n in range(10)])
