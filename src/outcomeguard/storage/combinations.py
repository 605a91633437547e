"""combinations_5d table - populate once, load read-only into a CombinationsTable."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

import duckdb
import structlog

from outcomeguard.errors import StateUnavailable
from outcomeguard.models.outcome import FIVED_SUM_BIG_FROM
from outcomeguard.outcomes.combinations import CombinationsTable
from outcomeguard.storage.db import get_connection, init_schema

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)

_POPULATE_SQL = """
INSERT OR IGNORE INTO combinations_5d
SELECT
    a, b, c, d, e, s,
    CASE WHEN s >= ? THEN 'big' ELSE 'small' END,
    CASE WHEN s % 2 = 0 THEN 'even' ELSE 'odd' END
FROM (
    SELECT a, b, c, d, e, a + b + c + d + e AS s
    FROM range(10) ta(a), range(10) tb(b), range(10) tc(c), range(10) td(d), range(10) te(e)
)
"""


def load_combinations(conn: DuckDBPyConnection) -> int:
    """Fill combinations_5d (idempotent). Returns the resulting row count."""
    conn.execute(_POPULATE_SQL, [FIVED_SUM_BIG_FROM])
    count = combination_count(conn)
    log.info("combinations_loaded", rows=count)
    return count


def combination_count(conn: DuckDBPyConnection) -> int:
    return int(conn.execute("SELECT COUNT(*) FROM combinations_5d").fetchone()[0])


def fetch_combinations_table(conn: DuckDBPyConnection) -> CombinationsTable:
    """Read all rows and build the indexed table. Missing or partial data raises StateUnavailable."""
    try:
        rows = conn.execute(
            """
            SELECT dice_a, dice_b, dice_c, dice_d, dice_e, sum_value, sum_size, sum_parity
            FROM combinations_5d
            ORDER BY dice_a, dice_b, dice_c, dice_d, dice_e
            """
        ).fetchall()
    except duckdb.Error as e:
        raise StateUnavailable(f"Combinations table unavailable: {e}") from e
    return CombinationsTable.from_rows(rows)


@lru_cache(maxsize=4)
def cached_combinations_table(db_path: str) -> CombinationsTable:
    """Per-process cache; the table never changes at runtime."""
    conn = get_connection(db_path, read_only=False)
    try:
        init_schema(conn)
        return fetch_combinations_table(conn)
    finally:
        conn.close()
