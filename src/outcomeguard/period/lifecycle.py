"""Period lifecycle - open, ingest bets, freeze, settle exactly once.

State lives in the injected store, shared by the threads of the one process
that owns it (DuckDB admits a single writing process, so the scheduler runs
inside the API). Ingestion and the freeze transition share one atomic
section, so the engine sees every bet accepted before the freeze and none
after it.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from threading import Lock
from typing import Any, Callable, Iterable

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from outcomeguard.errors import (
    BetValidationError,
    OutcomeGuardError,
    PeriodStateError,
    ResultAlreadyRecorded,
    StateUnavailable,
)
from outcomeguard.exposure import CandidateSetStats, CandidateSetTracker, ExposureLedger, ParticipationGate
from outcomeguard.models.bet import Bet, BetReceipt
from outcomeguard.models.game import GameKind, PeriodKey, PeriodState
from outcomeguard.models.result import Result
from outcomeguard.outcomes import OutcomeSpaces
from outcomeguard.period.clock import current_window, previous_window, window_for
from outcomeguard.selection import SelectionEngine
from outcomeguard.storage.results import ResultRecorder
from outcomeguard.store.base import StateStore
from outcomeguard.store.keys import state_key, stats_key

log = structlog.get_logger(__name__)


class PeriodStatus(BaseModel):
    period: str
    state: PeriodState | None
    unique_users: int
    protection_active: bool
    bet_count: int
    total_stake: int
    exposure_entries: int
    candidates: CandidateSetStats | None = None
    has_result: bool = False


class PeriodManager:
    """Owns per-period ephemeral state for every game, duration and timeline."""

    def __init__(
        self,
        store: StateStore,
        spaces: OutcomeSpaces,
        recorder: ResultRecorder,
        *,
        enhanced_user_threshold: int = 2,
        protected_share_pct: int = 60,
        retention_sec: int = 3600,
        freeze_seconds: int = 5,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.spaces = spaces
        self.recorder = recorder
        self.retention_sec = retention_sec
        self.freeze_seconds = freeze_seconds
        # When set, bets on clock period ids are refused from freeze_at even before the tick freezes them
        self.clock = clock
        self.ledger = ExposureLedger(store, spaces, retention_sec)
        self.candidates = CandidateSetTracker(store, spaces, retention_sec)
        self.gate = ParticipationGate(store, enhanced_user_threshold, retention_sec)
        self.engine = SelectionEngine(
            spaces, self.ledger, self.candidates, protected_share_pct=protected_share_pct, rng=rng
        )
        self._settle_lock = Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        store: StateStore | None = None,
        recorder: ResultRecorder | None = None,
        spaces: OutcomeSpaces | None = None,
    ) -> PeriodManager:
        """Wire DuckDB-backed store, recorder and combinations table from Settings."""
        from outcomeguard.storage.combinations import cached_combinations_table
        from outcomeguard.storage.results import DuckDBResultRecorder
        from outcomeguard.store.duckdb_store import DuckDBStore

        if spaces is None:
            try:
                spaces = OutcomeSpaces(cached_combinations_table(settings.db_path))
            except StateUnavailable as e:
                log.warning("combinations_unavailable", error=str(e), msg="5d periods will fail until loaded")
                spaces = OutcomeSpaces()
        return cls(
            store if store is not None else DuckDBStore(settings.db_path),
            spaces,
            recorder if recorder is not None else DuckDBResultRecorder(settings.db_path),
            enhanced_user_threshold=settings.enhanced_user_threshold,
            protected_share_pct=settings.protected_share_pct,
            retention_sec=settings.retention_sec,
            freeze_seconds=settings.freeze_seconds,
            clock=(lambda: datetime.now(timezone.utc)) if settings.enforce_bet_clock else None,
        )

    # --- state ---

    def state(self, period: PeriodKey) -> PeriodState | None:
        raw = self.store.get(state_key(period))
        return PeriodState(raw) if raw else None

    def _set_state(self, period: PeriodKey, state: PeriodState) -> None:
        self.store.set(state_key(period), state.value, ttl=self.retention_sec)

    def _require(self, period: PeriodKey, expected: PeriodState) -> None:
        current = self.state(period)
        if current is not expected:
            shown = current.value if current else "unknown"
            raise PeriodStateError(f"Period {period.scope} is {shown}, expected {expected.value}")

    def _check_betting_window(self, period: PeriodKey) -> None:
        if self.clock is None:
            return
        try:
            window = window_for(period.period_id, period.duration, self.freeze_seconds)
        except ValueError:
            # Not a clock-derived id; only the stored state applies
            return
        now = self.clock()
        if now >= window.freeze_at:
            raise PeriodStateError(f"Betting on {period.scope} closed at {window.freeze_at.isoformat()}")

    def open_period(self, period: PeriodKey) -> PeriodState:
        """Create the period in OPEN. Idempotent: an existing period keeps its state."""
        self.spaces.get(period.game)
        with self.store.atomic():
            current = self.state(period)
            if current is not None:
                return current
            if self.candidates.applies_to(period):
                self.candidates.initialize(period)
            self._set_state(period, PeriodState.OPEN)
        log.info("period_opened", period=period.scope)
        return PeriodState.OPEN

    def freeze(self, period: PeriodKey) -> None:
        """OPEN -> FROZEN. Bets are rejected from here on."""
        with self.store.atomic():
            self._require(period, PeriodState.OPEN)
            self._set_state(period, PeriodState.FROZEN)
        log.info("period_frozen", period=period.scope, unique_users=self.gate.unique_user_count(period))

    # --- ingestion ---

    def place_bet(
        self,
        game: str | GameKind,
        duration: int,
        timeline: str,
        period_id: str,
        user_id: str,
        bet_type: str,
        bet_value: str | int,
        stake: int,
        payout_multiplier: Decimal | str | float,
    ) -> BetReceipt:
        """Record a bet whose stake the wallet layer has already debited."""
        period = PeriodKey.build(game, duration, timeline, period_id)
        space = self.spaces.get(period.game)
        predicate = space.parse_predicate(bet_type, bet_value)
        bet = _build_bet(user_id, predicate, stake, payout_multiplier)

        self._check_betting_window(period)

        with self.store.atomic():
            self._require(period, PeriodState.OPEN)
            self.gate.register(period, bet.user_id)
            predicate_total = self.ledger.record(period, bet.predicate, bet.stake, bet.payout_multiplier)
            removed = None
            if self.candidates.applies_to(period):
                removed = self.candidates.remove_winning(period, bet.predicate)
            skey = stats_key(period)
            self.store.hincrby(skey, "bet_count", 1)
            self.store.hincrby(skey, "total_stake", bet.stake)
            self.store.expire(skey, self.retention_sec)
            users = self.gate.unique_user_count(period)

        log.info(
            "bet_recorded",
            period=period.scope,
            user_id=bet.user_id,
            predicate=predicate.key,
            stake=bet.stake,
            liability=bet.liability,
        )
        return BetReceipt(
            period=period.scope,
            predicate=predicate.key,
            liability=bet.liability,
            predicate_liability=predicate_total,
            unique_users=users,
            candidates_removed=removed,
        )

    # --- settlement ---

    def settle(self, period: PeriodKey) -> Result:
        """FROZEN -> SETTLED. Runs selection once and records the Result.

        Any failure leaves the period FROZEN so settlement can be retried.
        """
        with self._settle_lock:
            existing = self.recorder.get_result(period)
            if existing is not None:
                # A previous attempt recorded the result but did not finish the transition
                if self.state(period) is PeriodState.SETTLED:
                    raise PeriodStateError(f"Period {period.scope} is already settled")
                self._finish(period)
                return existing
            self._require(period, PeriodState.FROZEN)
            users = self.gate.unique_user_count(period)
            protection_active = users < self.gate.threshold
            result = self.engine.select(period, protection_active, unique_users=users)
            try:
                self.recorder.record_result(result)
            except ResultAlreadyRecorded:
                result = self.recorder.get_result(period) or result
            self._finish(period)
        log.info(
            "period_settled",
            period=period.scope,
            outcome=result.outcome_key,
            branch=result.branch,
            protection_active=result.protection_active,
            unique_users=users,
            liability=result.liability,
        )
        return result

    def _finish(self, period: PeriodKey) -> None:
        with self.store.atomic():
            self._set_state(period, PeriodState.SETTLED)
            if self.candidates.applies_to(period):
                self.candidates.discard(period)

    # --- monitoring ---

    def exposure_snapshot(self, period: PeriodKey) -> dict[str, int]:
        return self.ledger.snapshot(period)

    def candidate_stats(self, period: PeriodKey) -> CandidateSetStats:
        if not self.candidates.applies_to(period):
            raise BetValidationError(f"Candidate sets are only kept for {self.candidates.game.value}")
        return self.candidates.stats(period)

    def get_result(self, period: PeriodKey) -> Result | None:
        return self.recorder.get_result(period)

    def status(self, period: PeriodKey) -> PeriodStatus:
        state = self.state(period)
        counters = self.store.hgetall(stats_key(period))
        users = self.gate.unique_user_count(period)
        candidates = None
        if self.candidates.applies_to(period) and state is not PeriodState.SETTLED and state is not None:
            candidates = self.candidates.stats(period)
        return PeriodStatus(
            period=period.scope,
            state=state,
            unique_users=users,
            protection_active=users < self.gate.threshold,
            bet_count=counters.get("bet_count", 0),
            total_stake=counters.get("total_stake", 0),
            exposure_entries=len(self.ledger.snapshot(period)),
            candidates=candidates,
            has_result=self.recorder.get_result(period) is not None,
        )

    # --- scheduling ---

    def tick(self, now: datetime, schedule: Iterable[tuple[GameKind, int, str]]) -> list[Result]:
        """Advance every scheduled (game, duration, timeline) to match the clock.

        Opens the current period, freezes periods inside their freeze window and
        settles frozen periods whose slot has ended. A failed settlement is logged
        and retried on the next tick while the period is still the previous one.
        Expired per-period state is purged at the end of each tick.
        """
        settled: list[Result] = []
        for game, duration, timeline in schedule:
            if game not in self.spaces:
                continue
            current = current_window(now, duration, self.freeze_seconds)
            for window in (previous_window(current, self.freeze_seconds), current):
                period = PeriodKey.build(game, duration, timeline, window.period_id)
                try:
                    state = self.state(period)
                    if state is None and window is current:
                        state = self.open_period(period)
                    if state is PeriodState.OPEN and now >= window.freeze_at:
                        self.freeze(period)
                        state = PeriodState.FROZEN
                    if state is PeriodState.FROZEN and window.has_ended(now):
                        settled.append(self.settle(period))
                except OutcomeGuardError as e:
                    log.error("period_tick_failed", period=period.scope, error=str(e), code=e.code)
        self.store.purge_expired()
        return settled


def _build_bet(user_id: str, predicate: Any, stake: int, payout_multiplier: Any) -> Bet:
    try:
        multiplier = payout_multiplier if isinstance(payout_multiplier, Decimal) else Decimal(str(payout_multiplier))
    except InvalidOperation:
        raise BetValidationError(f"Invalid payout multiplier: {payout_multiplier!r}") from None
    if isinstance(stake, bool) or not isinstance(stake, int):
        raise BetValidationError(f"Stake must be an integer number of minor units, got {stake!r}")
    try:
        return Bet(user_id=str(user_id), predicate=predicate, stake=stake, payout_multiplier=multiplier)
    except PydanticValidationError as e:
        err = e.errors()[0]
        raise BetValidationError(f"Invalid bet ({'.'.join(map(str, err['loc']))}): {err['msg']}") from None
