"""Exposure ledger - per-period predicate -> cumulative liability (integer minor units)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog

from outcomeguard.models.bet import liability_for
from outcomeguard.models.game import PeriodKey
from outcomeguard.outcomes import OutcomeSpaces
from outcomeguard.store.base import StateStore
from outcomeguard.store.keys import exposure_key

log = structlog.get_logger(__name__)


class ExposureLedger:
    """Liability per predicate, kept in the shared store. Only ever grows within a period."""

    def __init__(self, store: StateStore, spaces: OutcomeSpaces, retention_sec: int = 3600) -> None:
        self.store = store
        self.spaces = spaces
        self.retention_sec = retention_sec

    def record(self, period: PeriodKey, predicate: Any, stake: int, multiplier: Decimal) -> int:
        """Add stake x multiplier to the predicate's liability. Returns the new cumulative liability."""
        amount = liability_for(stake, multiplier)
        key = exposure_key(period)
        total = self.store.hincrby(key, predicate.key, amount)
        self.store.expire(key, self.retention_sec)
        log.debug("exposure_recorded", period=period.scope, predicate=predicate.key, amount=amount, total=total)
        return total

    def snapshot(self, period: PeriodKey) -> dict[str, int]:
        """Predicate key -> liability. Read-only monitoring view."""
        return self.store.hgetall(exposure_key(period))

    def entries(self, period: PeriodKey) -> list[tuple[Any, int]]:
        """Parsed (predicate, liability) pairs, skipping zero entries."""
        space = self.spaces.get(period.game)
        return [
            (space.parse_predicate_key(field), amount)
            for field, amount in sorted(self.snapshot(period).items())
            if amount > 0
        ]

    def total_liability_if_outcome(self, period: PeriodKey, outcome_key: str) -> int:
        """Sum of liabilities of every predicate that pays out on the outcome."""
        space = self.spaces.get(period.game)
        outcome = space.outcome(outcome_key)
        return sum(amount for predicate, amount in self.entries(period) if predicate.wins(outcome))

    def liability_by_outcome(self, period: PeriodKey) -> dict[str, int]:
        """Liability for every outcome in the universe.

        Built from winning-set unions, so the cost is the total size of the
        ledger predicates' winning sets rather than universe x predicates.
        """
        space = self.spaces.get(period.game)
        totals = dict.fromkeys(space.universe(), 0)
        for predicate, amount in self.entries(period):
            for key in space.winning_outcomes(predicate):
                totals[key] += amount
        return totals
