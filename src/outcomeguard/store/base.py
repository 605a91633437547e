"""Shared key-value store protocol - the only cross-process resource.

Implementations give atomic increment-on-keyed-aggregate and atomic set
removal; ``atomic()`` groups several operations into one linearizable step.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Iterable, Protocol


class StateStore(Protocol):
    def atomic(self) -> AbstractContextManager[StateStore]: ...

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str, ttl: int | None = None) -> None: ...

    def hincrby(self, key: str, field: str, amount: int) -> int: ...
    def hgetall(self, key: str) -> dict[str, int]: ...

    def sadd(self, key: str, members: Iterable[str]) -> int: ...
    def srem(self, key: str, members: Iterable[str]) -> int: ...
    def scard(self, key: str) -> int: ...
    def smembers(self, key: str) -> set[str]: ...

    def expire(self, key: str, ttl: int) -> None: ...
    def delete(self, *keys: str) -> None: ...
    def purge_expired(self) -> int: ...
    def ping(self) -> bool: ...
