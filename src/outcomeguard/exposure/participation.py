"""Participation gate - distinct bettors per period against a fixed threshold."""

from __future__ import annotations

from outcomeguard.models.game import PeriodKey
from outcomeguard.store.base import StateStore
from outcomeguard.store.keys import users_key


class ParticipationGate:
    """Protection applies while fewer than ``threshold`` distinct users have bet."""

    def __init__(self, store: StateStore, threshold: int = 2, retention_sec: int = 3600) -> None:
        self.store = store
        self.threshold = threshold
        self.retention_sec = retention_sec

    def register(self, period: PeriodKey, user_id: str) -> None:
        key = users_key(period)
        self.store.sadd(key, [str(user_id)])
        self.store.expire(key, self.retention_sec)

    def unique_user_count(self, period: PeriodKey) -> int:
        return self.store.scard(users_key(period))

    def protection_active(self, period: PeriodKey) -> bool:
        return self.unique_user_count(period) < self.threshold
