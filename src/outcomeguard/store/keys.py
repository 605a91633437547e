"""Per-period storage keys: <prefix>:<game>:<duration>:<timeline>:<period_id>."""

from __future__ import annotations

from outcomeguard.models.game import PeriodKey


def exposure_key(period: PeriodKey) -> str:
    return f"exposure:{period.scope}"


def candidates_key(period: PeriodKey) -> str:
    """Set of predicate keys whose winning outcomes are out of the 5d candidate set."""
    return f"zero_exposure:{period.scope}"


def users_key(period: PeriodKey) -> str:
    return f"users:{period.scope}"


def state_key(period: PeriodKey) -> str:
    return f"period_state:{period.scope}"


def stats_key(period: PeriodKey) -> str:
    """Hash of ingestion counters (bet_count, total_stake)."""
    return f"period_stats:{period.scope}"
