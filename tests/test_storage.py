"""DuckDB-backed store, result recorder and combinations table."""

import os
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest

from conftest import period_key, place_concurrently

from outcomeguard.errors import InvariantViolation, ResultAlreadyRecorded, StateUnavailable
from outcomeguard.models import GameKind, Result
from outcomeguard.outcomes.combinations import UNIVERSE_SIZE
from outcomeguard.period import PeriodManager
from outcomeguard.storage.combinations import combination_count, fetch_combinations_table, load_combinations
from outcomeguard.storage.db import get_connection, init_schema
from outcomeguard.storage.results import DuckDBResultRecorder, fetch_result, insert_result, list_results
from outcomeguard.store import DuckDBStore
from outcomeguard.store.keys import candidates_key


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    path.unlink(missing_ok=True)
    Path(tmp).rmdir()


@pytest.fixture
def clock():
    return [1000.0]


@pytest.fixture
def store(temp_db, clock):
    return DuckDBStore(temp_db, clock=lambda: clock[0])


def test_hincrby_accumulates(store):
    assert store.hincrby("exposure:x", "COLOR:red", 200) == 200
    assert store.hincrby("exposure:x", "COLOR:red", 98) == 298
    assert store.hincrby("exposure:x", "NUMBER:4", 9) == 9
    assert store.hgetall("exposure:x") == {"COLOR:red": 298, "NUMBER:4": 9}
    assert store.hgetall("exposure:y") == {}


def test_set_operations_report_changes(store):
    assert store.sadd("s", ["a", "b", "c"]) == 3
    assert store.sadd("s", ["c", "d"]) == 1
    assert store.srem("s", ["a", "z"]) == 1
    assert store.scard("s") == 3
    assert store.smembers("s") == {"b", "c", "d"}
    assert store.srem("s", []) == 0


def test_strings_and_expiry(store, clock):
    store.set("period_state:x", "open", ttl=60)
    store.sadd("users:x", ["u1"])
    store.expire("users:x", 60)
    assert store.get("period_state:x") == "open"
    clock[0] += 61
    assert store.get("period_state:x") is None
    assert store.scard("users:x") == 0


def test_purge_expired(store, clock):
    store.set("a", "1", ttl=10)
    store.set("b", "1")
    clock[0] += 11
    assert store.purge_expired() == 1
    assert store.get("b") == "1"


def test_atomic_rolls_back_on_error(store):
    store.hincrby("h", "f", 1)
    with pytest.raises(RuntimeError):
        with store.atomic():
            store.hincrby("h", "f", 10)
            store.sadd("s", ["a"])
            raise RuntimeError("boom")
    assert store.hgetall("h") == {"f": 1}
    assert store.scard("s") == 0
    # Nested sections commit with the outermost one
    with store.atomic():
        with store.atomic():
            store.set("k", "v")
    assert store.get("k") == "v"


def test_closed_connection_is_state_unavailable(store):
    store.close()
    assert not store.ping()
    with pytest.raises(StateUnavailable):
        store.get("anything")


def test_load_and_fetch_combinations(temp_db):
    assert load_combinations(temp_db) == UNIVERSE_SIZE
    # Idempotent
    assert load_combinations(temp_db) == UNIVERSE_SIZE
    row = temp_db.execute(
        "SELECT sum_value, sum_size, sum_parity FROM combinations_5d "
        "WHERE dice_a = 9 AND dice_b = 9 AND dice_c = 9 AND dice_d = 9 AND dice_e = 4"
    ).fetchone()
    assert row == (40, "big", "even")
    table = fetch_combinations_table(temp_db)
    assert len(table) == UNIVERSE_SIZE
    assert len(table.position("A", 5)) == 10_000


def test_corrupt_combinations_row_is_rejected(temp_db):
    load_combinations(temp_db)
    temp_db.execute(
        "UPDATE combinations_5d SET sum_size = 'big' "
        "WHERE dice_a = 0 AND dice_b = 0 AND dice_c = 0 AND dice_d = 0 AND dice_e = 0"
    )
    with pytest.raises(InvariantViolation):
        fetch_combinations_table(temp_db)


def test_missing_combinations_is_unavailable(temp_db):
    assert combination_count(temp_db) == 0
    with pytest.raises(StateUnavailable):
        fetch_combinations_table(temp_db)


def _result(period_id="20250101000000001", game="k3"):
    period = period_key(game, 60, period_id)
    return Result(
        period=period,
        outcome_key="225",
        digits=(2, 2, 5),
        attributes={
            "dice": [2, 2, 5],
            "sum": 9,
            "sum_size": "small",
            "sum_parity": "odd",
            "is_triple": False,
            "is_pair": True,
            "is_straight": False,
        },
        branch="protected",
        protection_active=True,
        unique_users=1,
        seed=12345,
        liability=0,
        created_at=1_700_000_000_000,
    ).verify()


def test_result_round_trip(temp_db):
    result = _result()
    insert_result(temp_db, result)
    assert fetch_result(temp_db, result.period) == result
    assert fetch_result(temp_db, period_key("k3", 60, "other")) is None


def test_result_recorded_once(temp_db):
    recorder = DuckDBResultRecorder(temp_db)
    recorder.record_result(_result())
    with pytest.raises(ResultAlreadyRecorded):
        recorder.record_result(_result())
    assert len(recorder.recent()) == 1


def test_list_results_filters_by_game(temp_db):
    insert_result(temp_db, _result("1"))
    insert_result(temp_db, _result("2"))
    assert len(list_results(temp_db, GameKind.TRIPLE_DICE)) == 2
    assert list_results(temp_db, GameKind.SMALL_DISCRETE) == []


def test_manager_over_duckdb(temp_db, spaces):
    mgr = PeriodManager(DuckDBStore(temp_db), spaces, DuckDBResultRecorder(temp_db), protected_share_pct=100)
    period = period_key("5d")
    mgr.open_period(period)
    mgr.place_bet("5d", 60, "default", period.period_id, "u1", "POSITION", "A_5", 100, "9.8")
    assert mgr.candidate_stats(period).remaining == 90_000
    mgr.freeze(period)
    result = mgr.settle(period)
    assert result.attributes["A"] != 5
    assert mgr.get_result(period) == result
    # Candidates are discarded once settled
    assert mgr.store.scard(candidates_key(period)) == 0


def test_candidate_set_is_stored_per_predicate_not_per_outcome(temp_db, spaces):
    mgr = PeriodManager(DuckDBStore(temp_db), spaces, DuckDBResultRecorder(temp_db), protected_share_pct=100)
    period = period_key("5d")
    mgr.open_period(period)
    assert temp_db.execute("SELECT COUNT(*) FROM kv_sets").fetchone()[0] == 0
    bet_args = ("5d", 60, "default", period.period_id, "u1")
    assert mgr.place_bet(*bet_args, "SUM_PARITY", "even", 100, "1.96").candidates_removed == 50_000
    assert mgr.place_bet(*bet_args, "POSITION", "A_1", 100, "9.8").candidates_removed == 5_000
    assert mgr.place_bet(*bet_args, "SUM_PARITY", "even", 100, "1.96").candidates_removed == 0
    assert mgr.store.smembers(candidates_key(period)) == {"SUM_PARITY:even", "POSITION:A_1"}
    assert temp_db.execute("SELECT COUNT(*) FROM kv_sets WHERE skey = ?", [candidates_key(period)]).fetchone()[0] == 2
    assert mgr.candidate_stats(period).remaining == 45_000
    members = mgr.candidates.members(period)
    assert len(members) == 45_000
    assert members == sorted(members)
    assert all(m[0] != "1" and sum(map(int, m)) % 2 == 1 for m in members)


def test_concurrent_bets_over_duckdb(temp_db, spaces):
    mgr = PeriodManager(DuckDBStore(temp_db), spaces, DuckDBResultRecorder(temp_db))
    period = period_key("5d")
    mgr.open_period(period)
    assert place_concurrently(mgr, period, threads=4, per_thread=5) == []

    exposure = mgr.exposure_snapshot(period)
    assert exposure == {
        **{f"POSITION:A_{i}": 3 * 20 for i in range(4)},
        "POSITION_PARITY:E_even": 4 * 2 * 20,
    }
    status = mgr.status(period)
    assert (status.bet_count, status.total_stake, status.unique_users) == (20, 200, 4)
    # Left: A in 4..9 with E odd
    assert mgr.candidate_stats(period).remaining == 6 * 1000 * 5


_OPEN_FROM_CHILD = """
import sys
from outcomeguard.errors import StateUnavailable
from outcomeguard.store import DuckDBStore
try:
    DuckDBStore(sys.argv[1])
except StateUnavailable as e:
    print(e.code)
else:
    print("opened")
"""


def test_second_process_gets_state_unavailable(tmp_path):
    path = tmp_path / "shared.duckdb"
    store = DuckDBStore(path)
    src = Path(__file__).resolve().parent.parent / "src"
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(p for p in (str(src), os.environ.get("PYTHONPATH")) if p)}
    try:
        proc = subprocess.run(
            [sys.executable, "-c", _OPEN_FROM_CHILD, str(path)],
            capture_output=True,
            text=True,
            env=env,
            timeout=120,
        )
    finally:
        store.close()
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.strip() == "state_unavailable"
