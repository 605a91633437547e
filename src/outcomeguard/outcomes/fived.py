"""Five-digit combinatorial game (Combinatorial5): 100,000 outcomes backed by the combinations table."""

from __future__ import annotations

from typing import Any

from outcomeguard.errors import BetValidationError
from outcomeguard.models.game import GameKind
from outcomeguard.models.outcome import FiveDigitOutcome
from outcomeguard.outcomes.base import OutcomeSpace
from outcomeguard.outcomes.combinations import CombinationsTable

FIVED_MAX_SUM = 45


class FiveDOutcomeSpace(OutcomeSpace):
    """Rule-based membership via the table's precomputed indexes."""

    game = GameKind.COMBINATORIAL5
    predicate_kinds = frozenset(
        {"position", "position_size", "position_parity", "sum", "sum_size", "sum_parity"}
    )

    def __init__(self, table: CombinationsTable) -> None:
        self.table = table

    def universe(self) -> list[str]:
        return self.table.keys()

    @property
    def size(self) -> int:
        return len(self.table)

    def outcome(self, key: str) -> FiveDigitOutcome:
        return self.table.outcome(key)

    def check_predicate(self, predicate: Any) -> Any:
        if predicate.kind == "sum" and not 0 <= predicate.total <= FIVED_MAX_SUM:
            raise BetValidationError(f"5d sum must be 0-{FIVED_MAX_SUM}, got {predicate.total}")
        return predicate

    def winning_outcomes(self, predicate: Any) -> frozenset[str]:
        kind = predicate.kind
        if kind == "position":
            return self.table.position(predicate.position, predicate.digit)
        if kind == "position_size":
            return self.table.position_size(predicate.position, predicate.size)
        if kind == "position_parity":
            return self.table.position_parity(predicate.position, predicate.parity)
        if kind == "sum":
            return self.table.sum_total(predicate.total)
        if kind == "sum_size":
            return self.table.sum_size(predicate.size)
        if kind == "sum_parity":
            return self.table.sum_parity(predicate.parity)
        raise BetValidationError(f"{predicate.bet_type} bets are not offered on {self.game.value}")
