"""Period result persistence - written once per period, never updated."""

from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Any, Protocol

import duckdb

from outcomeguard.errors import ResultAlreadyRecorded, StateUnavailable
from outcomeguard.models.game import GameKind, PeriodKey
from outcomeguard.models.result import Result
from outcomeguard.storage.db import get_connection, init_schema

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = (
    "game, duration, timeline, period_id, outcome_key, digits, attributes, branch, "
    "protection_active, unique_users, seed, liability, created_at"
)


class ResultRecorder(Protocol):
    def record_result(self, result: Result) -> None: ...
    def get_result(self, period: PeriodKey) -> Result | None: ...


def insert_result(conn: DuckDBPyConnection, result: Result) -> None:
    """Insert one period_results row. A second insert for the same period raises ResultAlreadyRecorded."""
    p = result.period
    try:
        conn.execute(
            f"INSERT INTO period_results ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                p.game.value,
                p.duration,
                p.timeline,
                p.period_id,
                result.outcome_key,
                json.dumps(list(result.digits)),
                json.dumps(result.attributes),
                result.branch,
                result.protection_active,
                result.unique_users,
                result.seed,
                result.liability,
                result.created_at or 0,
            ],
        )
    except duckdb.ConstraintException:
        raise ResultAlreadyRecorded(f"Result already recorded for {p.scope}") from None


def _row_to_result(row: tuple[Any, ...]) -> Result:
    period = PeriodKey(game=GameKind(row[0]), duration=row[1], timeline=row[2], period_id=row[3])
    digits = json.loads(row[5]) if isinstance(row[5], str) else row[5]
    attributes = json.loads(row[6]) if isinstance(row[6], str) else row[6]
    return Result(
        period=period,
        outcome_key=row[4],
        digits=tuple(digits),
        attributes=attributes,
        branch=row[7],
        protection_active=bool(row[8]),
        unique_users=row[9],
        seed=row[10],
        liability=row[11],
        created_at=row[12],
    )


def fetch_result(conn: DuckDBPyConnection, period: PeriodKey) -> Result | None:
    row = conn.execute(
        f"SELECT {_COLUMNS} FROM period_results WHERE game = ? AND duration = ? AND timeline = ? AND period_id = ?",
        [period.game.value, period.duration, period.timeline, period.period_id],
    ).fetchone()
    return _row_to_result(row) if row else None


def list_results(
    conn: DuckDBPyConnection,
    game: GameKind | None = None,
    limit: int = 20,
) -> list[Result]:
    """Most recent results first."""
    if game is not None:
        rows = conn.execute(
            f"SELECT {_COLUMNS} FROM period_results WHERE game = ? ORDER BY created_at DESC LIMIT ?",
            [game.value, limit],
        ).fetchall()
    else:
        rows = conn.execute(
            f"SELECT {_COLUMNS} FROM period_results ORDER BY created_at DESC LIMIT ?", [limit]
        ).fetchall()
    return [_row_to_result(r) for r in rows]


class DuckDBResultRecorder:
    """ResultRecorder over the period_results table."""

    def __init__(self, conn: DuckDBPyConnection | str | Path) -> None:
        if isinstance(conn, (str, Path)):
            conn = get_connection(conn)
        self._conn = conn
        init_schema(self._conn)
        self._lock = Lock()

    def record_result(self, result: Result) -> None:
        with self._lock:
            try:
                insert_result(self._conn, result)
            except duckdb.Error as e:
                raise StateUnavailable(f"Could not persist result for {result.period}: {e}") from e

    def get_result(self, period: PeriodKey) -> Result | None:
        with self._lock:
            try:
                return fetch_result(self._conn, period)
            except duckdb.Error as e:
                raise StateUnavailable(f"Could not read result for {period}: {e}") from e

    def recent(self, game: GameKind | None = None, limit: int = 20) -> list[Result]:
        with self._lock:
            return list_results(self._conn, game=game, limit=limit)


class InMemoryResultRecorder:
    """ResultRecorder for tests and dry runs."""

    def __init__(self) -> None:
        self._results: dict[PeriodKey, Result] = {}
        self._lock = Lock()

    def record_result(self, result: Result) -> None:
        with self._lock:
            if result.period in self._results:
                raise ResultAlreadyRecorded(f"Result already recorded for {result.period.scope}")
            self._results[result.period] = result

    def get_result(self, period: PeriodKey) -> Result | None:
        return self._results.get(period)

    def recent(self, game: GameKind | None = None, limit: int = 20) -> list[Result]:
        results = [r for r in self._results.values() if game is None or r.period.game is game]
        return sorted(results, key=lambda r: r.created_at or 0, reverse=True)[:limit]
