"""Shared fixtures: the 5d universe is built once per session."""

import random
import threading

import pytest

from outcomeguard.models import PeriodKey
from outcomeguard.outcomes import CombinationsTable, OutcomeSpaces
from outcomeguard.period import PeriodManager
from outcomeguard.storage.results import InMemoryResultRecorder
from outcomeguard.store import MemoryStore


@pytest.fixture(scope="session")
def combinations():
    return CombinationsTable.generate()


@pytest.fixture(scope="session")
def spaces(combinations):
    return OutcomeSpaces(combinations)


@pytest.fixture
def make_manager(spaces):
    """Factory for an in-memory PeriodManager; protected_share_pct=100 forces the protected branch."""

    def _make(**kwargs):
        kwargs.setdefault("rng", random.Random(7))
        return PeriodManager(MemoryStore(), spaces, InMemoryResultRecorder(), **kwargs)

    return _make


def period_key(game: str, duration: int = 60, period_id: str = "20250101000000001") -> PeriodKey:
    return PeriodKey.build(game, duration, "default", period_id)


def bet(mgr, period, user_id, bet_type, bet_value, stake=100, multiplier="2"):
    return mgr.place_bet(
        period.game,
        period.duration,
        period.timeline,
        period.period_id,
        user_id=user_id,
        bet_type=bet_type,
        bet_value=bet_value,
        stake=stake,
        payout_multiplier=multiplier,
    )


def place_concurrently(mgr, period, threads, per_thread, stake=10, multiplier="2"):
    """Each thread i alternates POSITION A_i with a shared POSITION_PARITY E_even bet.

    Returns the exceptions raised inside the threads.
    """
    start = threading.Barrier(threads)
    errors = []

    def worker(i):
        start.wait()
        for j in range(per_thread):
            bet_type, bet_value = ("POSITION", f"A_{i}") if j % 2 == 0 else ("POSITION_PARITY", "E_even")
            try:
                bet(mgr, period, f"u{i}", bet_type, bet_value, stake=stake, multiplier=multiplier)
            except Exception as e:  # noqa: BLE001
                errors.append(e)

    workers = [threading.Thread(target=worker, args=(i,)) for i in range(threads)]
    for w in workers:
        w.start()
    for w in workers:
        w.join()
    return errors
