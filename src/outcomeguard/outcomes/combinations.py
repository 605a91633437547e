"""5D combinations table - the 100,000-tuple universe with position and sum indexes.

Indexes are built once at load so a predicate's winning set is a lookup
(or a union of lookups), never a scan of the universe.
"""

from __future__ import annotations

from collections import defaultdict
from itertools import product
from typing import Iterable, Sequence

import structlog

from outcomeguard.errors import InvariantViolation, StateUnavailable
from outcomeguard.models.outcome import FIVED_DIGIT_BIG_FROM, FIVED_SUM_BIG_FROM, POSITIONS, FiveDigitOutcome

log = structlog.get_logger(__name__)

UNIVERSE_SIZE = 100_000


class CombinationsTable:
    """Read-only universe for Combinatorial5 plus lookup indexes."""

    def __init__(self, outcomes: Iterable[FiveDigitOutcome]) -> None:
        self._outcomes: dict[str, FiveDigitOutcome] = {o.key: o for o in outcomes}
        if len(self._outcomes) != UNIVERSE_SIZE:
            raise StateUnavailable(
                f"Combinations table incomplete: {len(self._outcomes)} of {UNIVERSE_SIZE} tuples"
            )
        self._keys = sorted(self._outcomes)
        position: dict[tuple[str, int], set[str]] = defaultdict(set)
        by_sum: dict[int, set[str]] = defaultdict(set)
        for key, o in self._outcomes.items():
            for pos, digit in zip(POSITIONS, o.digits):
                position[(pos, digit)].add(key)
            by_sum[o.sum].add(key)
        self._position = {k: frozenset(v) for k, v in position.items()}
        self._sum = {k: frozenset(v) for k, v in by_sum.items()}
        self._sum_size = {
            "big": self._union_sums(lambda t: t >= FIVED_SUM_BIG_FROM),
            "small": self._union_sums(lambda t: t < FIVED_SUM_BIG_FROM),
        }
        self._sum_parity = {
            "even": self._union_sums(lambda t: t % 2 == 0),
            "odd": self._union_sums(lambda t: t % 2 == 1),
        }

    def _union_sums(self, keep) -> frozenset[str]:
        return frozenset().union(*(keys for total, keys in self._sum.items() if keep(total)))

    @classmethod
    def generate(cls) -> CombinationsTable:
        return cls(FiveDigitOutcome(*digits) for digits in product(range(10), repeat=5))

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence]) -> CombinationsTable:
        """Build from stored rows, checking every precomputed attribute against its digits."""
        outcomes = []
        for row in rows:
            a, b, c, d, e, sum_value, sum_size, sum_parity = row
            o = FiveDigitOutcome(int(a), int(b), int(c), int(d), int(e))
            if (o.sum, o.sum_size, o.sum_parity) != (int(sum_value), str(sum_size), str(sum_parity)):
                raise InvariantViolation(
                    f"Combinations row {o.key} stores ({sum_value}, {sum_size}, {sum_parity}), "
                    f"digits give ({o.sum}, {o.sum_size}, {o.sum_parity})"
                )
            outcomes.append(o)
        table = cls(outcomes)
        log.info("combinations_table_loaded", size=len(table))
        return table

    def __len__(self) -> int:
        return len(self._keys)

    def keys(self) -> list[str]:
        return list(self._keys)

    def outcome(self, key: str) -> FiveDigitOutcome:
        return self._outcomes[key]

    def position(self, position: str, digit: int) -> frozenset[str]:
        return self._position.get((position, digit), frozenset())

    def position_size(self, position: str, size: str) -> frozenset[str]:
        digits = range(FIVED_DIGIT_BIG_FROM, 10) if size == "big" else range(0, FIVED_DIGIT_BIG_FROM)
        return frozenset().union(*(self.position(position, d) for d in digits))

    def position_parity(self, position: str, parity: str) -> frozenset[str]:
        digits = range(0, 10, 2) if parity == "even" else range(1, 10, 2)
        return frozenset().union(*(self.position(position, d) for d in digits))

    def sum_total(self, total: int) -> frozenset[str]:
        return self._sum.get(total, frozenset())

    def sum_size(self, size: str) -> frozenset[str]:
        return self._sum_size[size]

    def sum_parity(self, parity: str) -> frozenset[str]:
        return self._sum_parity[parity]
