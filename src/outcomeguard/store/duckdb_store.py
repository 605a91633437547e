"""DuckDB-backed StateStore - durable per-period state with Redis-like semantics.

Every call holds the store lock; ``atomic()`` also opens a transaction so a
group of writes lands together or not at all. Any DuckDB failure surfaces as
StateUnavailable after rollback.

DuckDB lets one process hold the file for writing, so the store is shared by
the threads of a single process (the API, with its in-process scheduler).
Opening a file another process holds raises StateUnavailable.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from pathlib import Path
from threading import RLock
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

import duckdb
import structlog

from outcomeguard.errors import StateUnavailable
from outcomeguard.storage.db import get_connection, init_schema

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


class DuckDBStore:
    """StateStore over the kv_* tables."""

    def __init__(
        self,
        conn: DuckDBPyConnection | str | Path,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if isinstance(conn, (str, Path)):
            conn = get_connection(conn)
        self._conn = conn
        init_schema(self._conn)
        self._clock = clock
        self._lock = RLock()
        self._depth = 0

    def _exec(self, sql: str, params: list[Any] | None = None) -> Any:
        try:
            return self._conn.execute(sql, params or [])
        except duckdb.Error as e:
            raise StateUnavailable(f"State store error: {e}") from e

    @contextmanager
    def atomic(self) -> Iterator[DuckDBStore]:
        with self._lock:
            outer = self._depth == 0
            if outer:
                self._exec("BEGIN TRANSACTION")
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if outer:
                    self._rollback()
                raise
            self._depth -= 1
            if outer:
                self._exec("COMMIT")

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except duckdb.Error as e:
            log.warning("state_store_rollback_failed", error=str(e))

    def _reap(self, key: str) -> None:
        row = self._exec("SELECT expires_at FROM kv_expiry WHERE skey = ?", [key]).fetchone()
        if row is not None and row[0] <= self._clock():
            self._drop(key)

    def _drop(self, key: str) -> None:
        for table, column in (
            ("kv_strings", "skey"),
            ("kv_hashes", "hkey"),
            ("kv_sets", "skey"),
            ("kv_expiry", "skey"),
        ):
            self._exec(f"DELETE FROM {table} WHERE {column} = ?", [key])

    def get(self, key: str) -> str | None:
        with self._lock:
            self._reap(key)
            row = self._exec("SELECT svalue FROM kv_strings WHERE skey = ?", [key]).fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        with self.atomic():
            self._reap(key)
            self._exec("INSERT OR REPLACE INTO kv_strings (skey, svalue) VALUES (?, ?)", [key, value])
            if ttl is not None:
                self.expire(key, ttl)

    def hincrby(self, key: str, field: str, amount: int) -> int:
        with self.atomic():
            self._reap(key)
            self._exec(
                """
                INSERT INTO kv_hashes (hkey, field, amount) VALUES (?, ?, ?)
                ON CONFLICT (hkey, field) DO UPDATE SET amount = amount + excluded.amount
                """,
                [key, field, int(amount)],
            )
            row = self._exec(
                "SELECT amount FROM kv_hashes WHERE hkey = ? AND field = ?", [key, field]
            ).fetchone()
            return int(row[0])

    def hgetall(self, key: str) -> dict[str, int]:
        with self._lock:
            self._reap(key)
            rows = self._exec("SELECT field, amount FROM kv_hashes WHERE hkey = ?", [key]).fetchall()
            return {field: int(amount) for field, amount in rows}

    def sadd(self, key: str, members: Iterable[str]) -> int:
        members = list(members)
        if not members:
            return 0
        with self.atomic():
            self._reap(key)
            before = self.scard(key)
            self._exec(
                "INSERT OR IGNORE INTO kv_sets (skey, member) SELECT ?, UNNEST(?::VARCHAR[])",
                [key, members],
            )
            return self.scard(key) - before

    def srem(self, key: str, members: Iterable[str]) -> int:
        members = list(members)
        if not members:
            return 0
        with self.atomic():
            self._reap(key)
            before = self.scard(key)
            self._exec(
                "DELETE FROM kv_sets WHERE skey = ? AND member IN (SELECT UNNEST(?::VARCHAR[]))",
                [key, members],
            )
            return before - self.scard(key)

    def scard(self, key: str) -> int:
        with self._lock:
            self._reap(key)
            return int(self._exec("SELECT COUNT(*) FROM kv_sets WHERE skey = ?", [key]).fetchone()[0])

    def smembers(self, key: str) -> set[str]:
        with self._lock:
            self._reap(key)
            rows = self._exec("SELECT member FROM kv_sets WHERE skey = ?", [key]).fetchall()
            return {r[0] for r in rows}

    def expire(self, key: str, ttl: int) -> None:
        with self._lock:
            self._exec(
                "INSERT OR REPLACE INTO kv_expiry (skey, expires_at) VALUES (?, ?)",
                [key, self._clock() + ttl],
            )

    def delete(self, *keys: str) -> None:
        with self.atomic():
            for key in keys:
                self._drop(key)

    def purge_expired(self) -> int:
        with self.atomic():
            rows = self._exec("SELECT skey FROM kv_expiry WHERE expires_at <= ?", [self._clock()]).fetchall()
            for (key,) in rows:
                self._drop(key)
            if rows:
                log.info("state_store_purged", keys=len(rows))
            return len(rows)

    def ping(self) -> bool:
        try:
            self._exec("SELECT 1").fetchone()
        except StateUnavailable:
            return False
        return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()
