"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

from outcomeguard.errors import StateUnavailable

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- 5D universe with precomputed sum attributes (read-only at runtime)
CREATE TABLE IF NOT EXISTS combinations_5d (
    dice_a          TINYINT NOT NULL,
    dice_b          TINYINT NOT NULL,
    dice_c          TINYINT NOT NULL,
    dice_d          TINYINT NOT NULL,
    dice_e          TINYINT NOT NULL,
    sum_value       TINYINT NOT NULL,
    sum_size        VARCHAR NOT NULL,
    sum_parity      VARCHAR NOT NULL,
    PRIMARY KEY (dice_a, dice_b, dice_c, dice_d, dice_e)
);

-- One immutable result per settled period
CREATE TABLE IF NOT EXISTS period_results (
    game                VARCHAR NOT NULL,
    duration            INTEGER NOT NULL,
    timeline            VARCHAR NOT NULL,
    period_id           VARCHAR NOT NULL,
    outcome_key         VARCHAR NOT NULL,
    digits              JSON NOT NULL,
    attributes          JSON NOT NULL,
    branch              VARCHAR NOT NULL,
    protection_active   BOOLEAN NOT NULL,
    unique_users        INTEGER NOT NULL,
    seed                BIGINT,
    liability           BIGINT NOT NULL,
    created_at          BIGINT NOT NULL,
    PRIMARY KEY (game, duration, timeline, period_id)
);

-- Shared state store: strings, counter hashes, sets, per-key expiry
CREATE TABLE IF NOT EXISTS kv_strings (
    skey            VARCHAR PRIMARY KEY,
    svalue          VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS kv_hashes (
    hkey            VARCHAR NOT NULL,
    field           VARCHAR NOT NULL,
    amount          BIGINT NOT NULL,
    PRIMARY KEY (hkey, field)
);

CREATE TABLE IF NOT EXISTS kv_sets (
    skey            VARCHAR NOT NULL,
    member          VARCHAR NOT NULL,
    PRIMARY KEY (skey, member)
);

CREATE TABLE IF NOT EXISTS kv_expiry (
    skey            VARCHAR PRIMARY KEY,
    expires_at      DOUBLE NOT NULL
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    ":memory:" gives a private in-memory database (tests).

    DuckDB allows one writing process per file; a file locked by another
    process raises StateUnavailable."""
    try:
        if str(db_path) == ":memory:":
            return duckdb.connect(":memory:")
        path = Path(db_path)
        if not read_only:
            path.parent.mkdir(parents=True, exist_ok=True)
        return duckdb.connect(str(path), read_only=read_only)
    except duckdb.Error as e:
        raise StateUnavailable(f"Cannot open database {db_path}: {e}") from e


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
