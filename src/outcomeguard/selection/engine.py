"""Selection engine - the single place a period's Result is chosen.

Unprotected periods draw uniformly from the universe. Protected periods
(too few distinct bettors) take the protected branch for roughly
``protected_share_pct`` percent of period ids and the random branch
otherwise; the split and every tie-break come from the period seed, so a
protected selection can be replayed from the same ledger/candidate snapshot.
"""

from __future__ import annotations

import random
import time
from typing import Any

import structlog

from outcomeguard.errors import ImpossibleSelection, InvariantViolation
from outcomeguard.exposure.candidates import CandidateSetTracker
from outcomeguard.exposure.ledger import ExposureLedger
from outcomeguard.models.game import GameKind, PeriodKey
from outcomeguard.models.result import Branch, Result
from outcomeguard.outcomes import OutcomeSpace, OutcomeSpaces
from outcomeguard.selection.seed import period_seed

log = structlog.get_logger(__name__)


class SelectionEngine:
    def __init__(
        self,
        spaces: OutcomeSpaces,
        ledger: ExposureLedger,
        candidates: CandidateSetTracker,
        protected_share_pct: int = 60,
        rng: random.Random | None = None,
    ) -> None:
        self.spaces = spaces
        self.ledger = ledger
        self.candidates = candidates
        self.protected_share_pct = protected_share_pct
        self.rng = rng or random.SystemRandom()

    def select(self, period: PeriodKey, protection_active: bool, unique_users: int = 0) -> Result:
        """Choose the period's outcome. CPU-bound apart from the ledger/candidate reads."""
        space = self.spaces.get(period.game)
        seed = period_seed(period.period_id)
        ctx = {"protection_active": protection_active, "unique_users": unique_users, "seed": seed}
        if not protection_active:
            return self._random(period, space, **ctx)
        if seed % 100 >= self.protected_share_pct:
            log.info("selection_protected_period_random_branch", period=period.scope, seed=seed)
            return self._random(period, space, **ctx)
        if period.game is GameKind.COMBINATORIAL5:
            return self._from_candidates(period, space, **ctx)
        return self._lowest_liability(period, space, branch="protected", **ctx)

    def _random(self, period: PeriodKey, space: OutcomeSpace, **ctx: Any) -> Result:
        keys = space.universe()
        if not keys:
            raise ImpossibleSelection(f"Empty outcome universe for {period.game.value}")
        key = self.rng.choice(keys)
        liability = self.ledger.total_liability_if_outcome(period, key)
        return self._build(period, space, key, branch="random", liability=liability, **ctx)

    def _lowest_liability(self, period: PeriodKey, space: OutcomeSpace, branch: Branch, **ctx: Any) -> Result:
        """Global minimum liability over the universe; ties by seed over canonical order."""
        totals = self.ledger.liability_by_outcome(period)
        if not totals:
            raise ImpossibleSelection(f"No outcomes to evaluate for {period.scope}")
        lowest = min(totals.values())
        tied = sorted(k for k, v in totals.items() if v == lowest)
        key = tied[ctx["seed"] % len(tied)]
        log.info(
            "selection_lowest_liability",
            period=period.scope,
            liability=lowest,
            tied=len(tied),
            outcome=key,
        )
        return self._build(period, space, key, branch=branch, liability=lowest, **ctx)

    def _from_candidates(self, period: PeriodKey, space: OutcomeSpace, **ctx: Any) -> Result:
        members = self.candidates.members(period)
        if members:
            key = members[ctx["seed"] % len(members)]
            liability = self.ledger.total_liability_if_outcome(period, key)
            if liability != 0:
                raise InvariantViolation(
                    f"Candidate {key} for {period.scope} owes {liability}; candidate set out of sync with ledger"
                )
            log.info("selection_zero_exposure", period=period.scope, candidates=len(members), outcome=key)
            return self._build(period, space, key, branch="protected", liability=0, **ctx)
        if not self.ledger.entries(period):
            log.warning("selection_no_candidates_no_exposure", period=period.scope)
            return self._random(period, space, **ctx)
        log.info("selection_candidates_exhausted", period=period.scope)
        return self._lowest_liability(period, space, branch="lowest_liability", **ctx)

    def _build(
        self,
        period: PeriodKey,
        space: OutcomeSpace,
        key: str,
        *,
        branch: Branch,
        liability: int,
        protection_active: bool,
        unique_users: int,
        seed: int,
    ) -> Result:
        outcome = space.outcome(key)
        result = Result(
            period=period,
            outcome_key=outcome.key,
            digits=outcome.digits,
            attributes=outcome.attributes(),
            branch=branch,
            protection_active=protection_active,
            unique_users=unique_users,
            seed=seed,
            liability=liability,
            created_at=int(time.time() * 1000),
        )
        return result.verify()
