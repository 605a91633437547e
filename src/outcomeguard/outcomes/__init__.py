"""Outcome space adapters per game kind."""

from __future__ import annotations

from outcomeguard.errors import StateUnavailable
from outcomeguard.models.game import GameKind
from outcomeguard.outcomes.base import OutcomeSpace
from outcomeguard.outcomes.combinations import CombinationsTable
from outcomeguard.outcomes.fived import FiveDOutcomeSpace
from outcomeguard.outcomes.k3 import K3OutcomeSpace
from outcomeguard.outcomes.wingo import WingoOutcomeSpace


class OutcomeSpaces:
    """Registry of adapters; the 5d space exists only once a combinations table is supplied."""

    def __init__(self, combinations: CombinationsTable | None = None) -> None:
        self._spaces: dict[GameKind, OutcomeSpace] = {
            GameKind.SMALL_DISCRETE: WingoOutcomeSpace(),
            GameKind.TRIPLE_DICE: K3OutcomeSpace(),
        }
        if combinations is not None:
            self._spaces[GameKind.COMBINATORIAL5] = FiveDOutcomeSpace(combinations)

    def get(self, game: GameKind) -> OutcomeSpace:
        space = self._spaces.get(game)
        if space is None:
            raise StateUnavailable(f"No outcome space loaded for {game.value} (combinations table missing?)")
        return space

    def __contains__(self, game: GameKind) -> bool:
        return game in self._spaces


__all__ = [
    "CombinationsTable",
    "FiveDOutcomeSpace",
    "K3OutcomeSpace",
    "OutcomeSpace",
    "OutcomeSpaces",
    "WingoOutcomeSpace",
]
