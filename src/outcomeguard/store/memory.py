"""In-process store for tests and single-process runs. One RLock serializes every operation."""

from __future__ import annotations

import time
from contextlib import contextmanager
from threading import RLock
from typing import Callable, Iterable, Iterator


class MemoryStore:
    """Dict-backed StateStore with per-key TTL."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = RLock()
        self._strings: dict[str, str] = {}
        self._hashes: dict[str, dict[str, int]] = {}
        self._sets: dict[str, set[str]] = {}
        self._expires: dict[str, float] = {}

    @contextmanager
    def atomic(self) -> Iterator[MemoryStore]:
        with self._lock:
            yield self

    def _reap(self, key: str) -> None:
        exp = self._expires.get(key)
        if exp is not None and exp <= self._clock():
            self._drop(key)

    def _drop(self, key: str) -> None:
        self._strings.pop(key, None)
        self._hashes.pop(key, None)
        self._sets.pop(key, None)
        self._expires.pop(key, None)

    def get(self, key: str) -> str | None:
        with self._lock:
            self._reap(key)
            return self._strings.get(key)

    def set(self, key: str, value: str, ttl: int | None = None) -> None:
        with self._lock:
            self._reap(key)
            self._strings[key] = value
            if ttl is not None:
                self._expires[key] = self._clock() + ttl

    def hincrby(self, key: str, field: str, amount: int) -> int:
        with self._lock:
            self._reap(key)
            h = self._hashes.setdefault(key, {})
            h[field] = h.get(field, 0) + int(amount)
            return h[field]

    def hgetall(self, key: str) -> dict[str, int]:
        with self._lock:
            self._reap(key)
            return dict(self._hashes.get(key, {}))

    def sadd(self, key: str, members: Iterable[str]) -> int:
        with self._lock:
            self._reap(key)
            s = self._sets.setdefault(key, set())
            before = len(s)
            s.update(members)
            return len(s) - before

    def srem(self, key: str, members: Iterable[str]) -> int:
        with self._lock:
            self._reap(key)
            s = self._sets.get(key)
            if not s:
                return 0
            before = len(s)
            s.difference_update(members)
            return before - len(s)

    def scard(self, key: str) -> int:
        with self._lock:
            self._reap(key)
            return len(self._sets.get(key, ()))

    def smembers(self, key: str) -> set[str]:
        with self._lock:
            self._reap(key)
            return set(self._sets.get(key, ()))

    def expire(self, key: str, ttl: int) -> None:
        with self._lock:
            self._expires[key] = self._clock() + ttl

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._drop(key)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            dead = [k for k, exp in self._expires.items() if exp <= now]
            for key in dead:
                self._drop(key)
            return len(dead)

    def ping(self) -> bool:
        return True
