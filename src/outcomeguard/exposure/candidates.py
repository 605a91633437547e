"""Zero-exposure candidate set for Combinatorial5 - shrinks as bets arrive.

The store holds only the keys of predicates that have been bet on (at most a
few hundred per period). Remaining members are the universe minus the union
of those predicates' winning sets, read from the combinations table indexes.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import structlog
from pydantic import BaseModel

from outcomeguard.models.game import GameKind, PeriodKey
from outcomeguard.outcomes import OutcomeSpaces
from outcomeguard.outcomes.base import OutcomeSpace
from outcomeguard.store.base import StateStore
from outcomeguard.store.keys import candidates_key

log = structlog.get_logger(__name__)


class CandidateSetStats(BaseModel):
    universe_size: int
    remaining: int
    excluded: int


@lru_cache(maxsize=512)
def _covered(space: OutcomeSpace, predicate_keys: frozenset[str]) -> frozenset[str]:
    """Union of the winning sets of the given predicate keys."""
    covered: set[str] = set()
    for key in predicate_keys:
        covered |= space.winning_outcomes(space.parse_predicate_key(key))
    return frozenset(covered)


class CandidateSetTracker:
    """Outcomes owing zero liability, derived from the excluded predicates in the shared store."""

    game = GameKind.COMBINATORIAL5

    def __init__(self, store: StateStore, spaces: OutcomeSpaces, retention_sec: int = 3600) -> None:
        self.store = store
        self.spaces = spaces
        self.retention_sec = retention_sec

    def applies_to(self, period: PeriodKey) -> bool:
        return period.game is self.game

    def _space(self, period: PeriodKey) -> OutcomeSpace:
        return self.spaces.get(period.game)

    def _excluded(self, period: PeriodKey) -> frozenset[str]:
        return frozenset(self.store.smembers(candidates_key(period)))

    def initialize(self, period: PeriodKey) -> int:
        """Start a new period with the full universe. Returns the set size."""
        size = self._space(period).size
        self.store.delete(candidates_key(period))
        log.info("candidates_initialized", period=period.scope, size=size)
        return size

    def remove_winning(self, period: PeriodKey, predicate: Any) -> int:
        """Drop every outcome the predicate wins on. Returns how many were still present."""
        space = self._space(period)
        key = candidates_key(period)
        with self.store.atomic():
            if not self.store.sadd(key, [predicate.key]):
                return 0
            self.store.expire(key, self.retention_sec)
            before = self._excluded(period) - {predicate.key}
        removed = len(space.winning_outcomes(predicate) - _covered(space, before))
        if removed:
            log.debug("candidates_removed", period=period.scope, predicate=predicate.key, removed=removed)
        return removed

    def remaining(self, period: PeriodKey) -> int:
        space = self._space(period)
        return space.size - len(_covered(space, self._excluded(period)))

    def members(self, period: PeriodKey) -> list[str]:
        """Canonically sorted remaining candidates."""
        space = self._space(period)
        covered = _covered(space, self._excluded(period))
        return [key for key in space.universe() if key not in covered]

    def stats(self, period: PeriodKey) -> CandidateSetStats:
        size = self._space(period).size
        remaining = self.remaining(period)
        return CandidateSetStats(universe_size=size, remaining=remaining, excluded=size - remaining)

    def discard(self, period: PeriodKey) -> None:
        self.store.delete(candidates_key(period))
